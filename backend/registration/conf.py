"""Settings access for the registration app.

Everything configurable about the workflow lives in the ``HOMESTAY`` and
``HOMESTAY_FEES`` dicts in Django settings; this module fills in defaults.
"""
from django.conf import settings

__all__ = ['homestay_setting', 'fee_overrides']

DEFAULTS = {
    'APPLICATION_PREFIX': 'HP-HS',
    'CERTIFICATE_PREFIX': 'HP-HST',
    'PAYMENT_CALLBACK_SECRET': '',
}


def homestay_setting(name: str):
    configured = getattr(settings, 'HOMESTAY', None) or {}
    if name in configured and configured[name] not in (None, ''):
        return configured[name]
    return DEFAULTS[name]


def fee_overrides() -> dict:
    return dict(getattr(settings, 'HOMESTAY_FEES', None) or {})
