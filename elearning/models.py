"""
E-Learning Application Models Registry

This module serves as the central models registry for the E-Learning application.
It imports and exposes all models from the logical submodules (courses, purchases)
to ensure they are properly registered with Django's ORM system.

Architecture:
- courses/: Sellable courses and their lectures
- purchases/: Course purchase records reconciled with Stripe

Author: DSP Development Team
Version: 1.0.0
"""

# Import all course-related models for registration with Django ORM
from .courses.models import *

# Import all purchase-related models for registration with Django ORM
from .purchases.models import *
