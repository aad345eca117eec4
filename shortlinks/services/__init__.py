"""
Services module for business logic.

- code_generator: random short codes
- url_service: allocation of short codes, owner list/delete
- redirect_service: code resolution and click analytics
"""
