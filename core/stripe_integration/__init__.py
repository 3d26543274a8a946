"""
Stripe Integration Package - DSP
=============================================================

This package centralizes the Stripe-facing code of the DSP backend so that
billing is not tied to a single product domain.

Current Scope
--------------------
- `StripeGateway` (gateway.py): explicitly constructed Stripe client used by
  the course purchase flow for
  * creating Checkout Sessions (one-off course purchases)
  * verifying and decoding webhook events (Stripe-Signature header)
- Error types for Stripe failures (exceptions.py)
- Public config endpoint returning the publishable key (views.py)

Design Rationale
----------------
- No module-global `stripe.api_key`: the gateway carries its key and webhook
  secret, callers receive it by injection and tests pass a fake.
- Signature verification fails closed: without a configured signing secret
  every webhook is rejected.

Structure
---------
- __init__.py   → this file
- apps.py       → App configuration (`StripeIntegrationConfig`)
- exceptions.py → Stripe error taxonomy
- gateway.py    → `StripeGateway`, `CheckoutSession`, amount conversion
- views.py      → Stripe.js config endpoint
- urls.py       → Routes for Stripe endpoints

Author: DSP Development Team
Date: 2025-09-03
"""
