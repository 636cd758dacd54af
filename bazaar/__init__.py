"""
bazaar — marketplace checkout, payment and inventory reconciliation.

    from bazaar import api, settings

    app = api.create_app(settings.Settings.from_env())
"""

from bazaar._types import Result, Ok, Error, Money, money
from bazaar.errors import BazaarError

__version__ = "0.1.0"

__all__ = (
    "Result",
    "Ok",
    "Error",
    "Money",
    "money",
    "BazaarError",
    "__version__",
)
