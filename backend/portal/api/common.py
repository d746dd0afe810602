from flask import current_app, request

from portal.services.accounts.ban import DATE_FORMATS


def display_locale() -> str:
    """Best supported locale from Accept-Language, else the configured one."""
    match = request.accept_languages.best_match(list(DATE_FORMATS))
    return match or current_app.config.get('BAN_DISPLAY_LOCALE', 'fr-FR')


def display_timezone() -> str:
    return current_app.config.get('BAN_DISPLAY_TIMEZONE', 'UTC')


def as_int(value) -> int:
    # Form inputs arrive as numbers or strings; "1.5" counts as 1, unparsable as zero
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return value is True or value == 1
