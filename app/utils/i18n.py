from flask import current_app, request

LOCALE_NAMES = {
    "sc": "简体中文",
    "tc": "繁體中文",
    "en": "English",
}

# Accept-Language tags mapped onto the site locales
LANGUAGE_TAGS = {
    "zh-cn": "sc",
    "zh-sg": "sc",
    "zh-hans": "sc",
    "zh-tw": "tc",
    "zh-hk": "tc",
    "zh-hant": "tc",
    "zh": "sc",
    "en": "en",
}


def get_locale():
    """Locale for the current request: ?locale=, then Accept-Language, then the default."""
    locales = current_app.config["LOCALES"]
    requested = (request.args.get("locale") or "").lower()
    if requested in locales:
        return requested

    for tag, _quality in request.accept_languages:
        tag = tag.lower()
        if tag in LANGUAGE_TAGS:
            return LANGUAGE_TAGS[tag]
        primary = tag.split("-", 1)[0]
        if primary in LANGUAGE_TAGS:
            return LANGUAGE_TAGS[primary]

    return current_app.config["DEFAULT_LOCALE"]


def localized(obj, field, locale):
    """Read ``<field>_<locale>`` from a row, falling back to simplified chinese then english."""
    for candidate in (locale, "sc", "en"):
        value = getattr(obj, f"{field}_{candidate}", None)
        if value:
            return value
    return None
