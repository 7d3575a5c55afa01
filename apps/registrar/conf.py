# registrar/conf.py

"""
Registrar settings.

Projects override any of these through a REGISTRAR dict in Django settings:

    REGISTRAR = {
        'PAYMENT_WINDOW_HOURS': 72,
        'DOCUMENT_PRICES': {'transcript_of_records': '150.00'},
    }
"""

from django.conf import settings

DEFAULTS = {
    # Hours a student has to pay after submitting a request
    'PAYMENT_WINDOW_HOURS': 48,
    'DAILY_REQUEST_LIMIT': 5,
    'MAX_QUANTITY': 10,
    'PAYMENT_REFERENCE_PREFIX': 'PRN',
    'REQUEST_NUMBER_PREFIX': 'REQ',
    'REFERENCE_RETRY_ATTEMPTS': 5,
    # Unit price per document type, as strings to keep them exact
    'DOCUMENT_PRICES': {
        'certificate_of_enrollment': '50.00',
        'certificate_of_grades': '50.00',
        'transcript_of_records': '100.00',
        'good_moral_certificate': '50.00',
        'diploma_copy': '150.00',
    },
}


def get_setting(name):
    overrides = getattr(settings, 'REGISTRAR', {}) or {}
    if name not in DEFAULTS:
        raise KeyError(f"Unknown registrar setting: {name}")
    return overrides.get(name, DEFAULTS[name])
