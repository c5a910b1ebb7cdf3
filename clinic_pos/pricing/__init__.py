"""
clinic_pos/pricing/__init__.py
------------------------------
Pricing blueprint: price lookups and line quotes.
URL prefix: /pricing
"""
from flask import Blueprint

pricing = Blueprint('pricing', __name__)

from clinic_pos.pricing import routes  # noqa: E402, F401
from clinic_pos.pricing import models  # noqa: E402, F401  — registers price tables with SQLAlchemy
