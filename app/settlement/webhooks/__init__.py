"""
Stripe webhook intake and handlers.
"""
