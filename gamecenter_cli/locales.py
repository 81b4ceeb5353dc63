"""Locale tags accepted by App Store Connect and the aliases mapped onto them."""

VALID_LOCALES = frozenset(
    {
        "ar-SA", "ca", "cs", "da", "de-DE", "el", "en-AU", "en-CA", "en-GB", "en-US",
        "es-ES", "es-MX", "fi", "fr-CA", "fr-FR", "he", "hi", "hr", "hu", "id",
        "it", "ja", "ko", "ms", "nl-NL", "no", "pl", "pt-BR", "pt-PT", "ro",
        "ru", "sk", "sv", "th", "tr", "uk", "vi", "zh-Hans", "zh-Hant",
    }
)  # fmt: skip

# App Store Connect drops the region for most languages.
LOCALE_ALIASES = {
    "it-IT": "it",
    "it-it": "it",
    "ja-JP": "ja",
    "ja-jp": "ja",
    "ko-KR": "ko",
    "ko-kr": "ko",
    "fi-FI": "fi",
    "sv-SE": "sv",
    "da-DK": "da",
    "no-NO": "no",
    "pl-PL": "pl",
    "tr-TR": "tr",
    "ru-RU": "ru",
    "cs-CZ": "cs",
    "sk-SK": "sk",
    "hu-HU": "hu",
    "ro-RO": "ro",
    "hr-HR": "hr",
    "uk-UA": "uk",
    "el-GR": "el",
    "he-IL": "he",
    "ar-AR": "ar-SA",
    "th-TH": "th",
    "vi-VN": "vi",
    "id-ID": "id",
    "ms-MY": "ms",
    "hi-IN": "hi",
    "ca-ES": "ca",
    "zh-CN": "zh-Hans",
    "zh-TW": "zh-Hant",
    "zh-HK": "zh-Hant",
}


def normalize_locale(locale):
    """Map an input locale tag to App Store Connect's form.

    Unknown tags are returned unchanged; the API has the final word.
    """
    return LOCALE_ALIASES.get(locale, locale)


def is_valid_locale(locale):
    return locale in VALID_LOCALES
