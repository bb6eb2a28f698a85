"""
Supported Languages and Voice Tables

Static language, voice and model data for the voice translation pipeline.
Everything here is read-only; the runtime view is ``VoiceCatalog`` in
``voiceverse.config``.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


# =============================================================================
# Language Definitions
# =============================================================================


@dataclass(frozen=True)
class Language:
    """A target language supported by the pipeline."""

    code: str
    name: str
    native_name: str
    region: str
    voice_id: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code,
            "name": self.name,
            "native_name": self.native_name,
            "region": self.region,
        }


# Sarah - multilingual, works across every supported language
MULTILINGUAL_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"

SUPPORTED_LANGUAGES: Tuple[Language, ...] = (
    Language("en", "English", "English", "US", MULTILINGUAL_VOICE_ID),
    Language("es", "Spanish", "Español", "ES", MULTILINGUAL_VOICE_ID),
    Language("fr", "French", "Français", "FR", MULTILINGUAL_VOICE_ID),
    Language("de", "German", "Deutsch", "DE", MULTILINGUAL_VOICE_ID),
    Language("it", "Italian", "Italiano", "IT", MULTILINGUAL_VOICE_ID),
    Language("pt", "Portuguese", "Português", "PT", MULTILINGUAL_VOICE_ID),
    Language("ru", "Russian", "Русский", "RU", MULTILINGUAL_VOICE_ID),
    Language("zh", "Chinese", "中文", "CN", MULTILINGUAL_VOICE_ID),
    Language("ja", "Japanese", "日本語", "JP", MULTILINGUAL_VOICE_ID),
    Language("ko", "Korean", "한국어", "KR", MULTILINGUAL_VOICE_ID),
    Language("ar", "Arabic", "العربية", "SA", MULTILINGUAL_VOICE_ID),
    Language("hi", "Hindi", "हिन्दी", "IN", MULTILINGUAL_VOICE_ID),
    Language("nl", "Dutch", "Nederlands", "NL", MULTILINGUAL_VOICE_ID),
    Language("sv", "Swedish", "Svenska", "SE", MULTILINGUAL_VOICE_ID),
    Language("no", "Norwegian", "Norsk", "NO", MULTILINGUAL_VOICE_ID),
    Language("da", "Danish", "Dansk", "DK", MULTILINGUAL_VOICE_ID),
    Language("fi", "Finnish", "Suomi", "FI", MULTILINGUAL_VOICE_ID),
    Language("pl", "Polish", "Polski", "PL", MULTILINGUAL_VOICE_ID),
    Language("tr", "Turkish", "Türkçe", "TR", MULTILINGUAL_VOICE_ID),
    Language("uk", "Ukrainian", "Українська", "UA", MULTILINGUAL_VOICE_ID),
    Language("th", "Thai", "ไทย", "TH", MULTILINGUAL_VOICE_ID),
    Language("vi", "Vietnamese", "Tiếng Việt", "VN", MULTILINGUAL_VOICE_ID),
    Language("id", "Indonesian", "Bahasa Indonesia", "ID", MULTILINGUAL_VOICE_ID),
    Language("ms", "Malay", "Bahasa Melayu", "MY", MULTILINGUAL_VOICE_ID),
    Language("tl", "Filipino", "Filipino", "PH", MULTILINGUAL_VOICE_ID),
)


# =============================================================================
# Voice Tables
# =============================================================================

DEFAULT_VOICE_IDS: Dict[str, str] = {
    "male": "IKne3meq5aSn9XLyUdCD",  # Charlie
    "female": MULTILINGUAL_VOICE_ID,
    "multilingual": MULTILINGUAL_VOICE_ID,
}

# Voice ids that fail intermittently upstream, mapped to stable replacements
VOICE_ID_REPLACEMENTS: Dict[str, str] = {
    "9BWtsMINqrJLrRacOk9x": "TxGEqnHWrfWFTfGW9XjX",
    "XB0fDUnXU5powFXDhCwa": "TxGEqnHWrfWFTfGW9XjX",
}


# =============================================================================
# Model Tables
# =============================================================================

DEFAULT_TTS_MODEL = "eleven_multilingual_v2"
SPEECH_TO_SPEECH_MODEL = "eleven_english_sts_v2"

LANGUAGE_MODEL_MAP: Dict[str, str] = {
    "en": "eleven_monolingual_v1",
    "es": DEFAULT_TTS_MODEL,
    "fr": DEFAULT_TTS_MODEL,
    "de": DEFAULT_TTS_MODEL,
    "it": DEFAULT_TTS_MODEL,
    "pt": DEFAULT_TTS_MODEL,
    "pl": DEFAULT_TTS_MODEL,
    "hi": DEFAULT_TTS_MODEL,
    "ar": DEFAULT_TTS_MODEL,
    "zh": DEFAULT_TTS_MODEL,
    "ja": DEFAULT_TTS_MODEL,
    "ko": DEFAULT_TTS_MODEL,
}


# Whisper reports full language names in verbose_json responses. Covers
# every language Whisper can detect plus the aliases it accepts.
WHISPER_LANGUAGE_CODES: Dict[str, str] = {
    "afrikaans": "af",
    "albanian": "sq",
    "amharic": "am",
    "arabic": "ar",
    "armenian": "hy",
    "assamese": "as",
    "azerbaijani": "az",
    "bashkir": "ba",
    "basque": "eu",
    "belarusian": "be",
    "bengali": "bn",
    "bosnian": "bs",
    "breton": "br",
    "bulgarian": "bg",
    "burmese": "my",
    "cantonese": "zh",
    "castilian": "es",
    "catalan": "ca",
    "chinese": "zh",
    "croatian": "hr",
    "czech": "cs",
    "danish": "da",
    "dutch": "nl",
    "english": "en",
    "estonian": "et",
    "faroese": "fo",
    "finnish": "fi",
    "flemish": "nl",
    "french": "fr",
    "galician": "gl",
    "georgian": "ka",
    "german": "de",
    "greek": "el",
    "gujarati": "gu",
    "haitian": "ht",
    "haitian creole": "ht",
    "hausa": "ha",
    "hawaiian": "haw",
    "hebrew": "he",
    "hindi": "hi",
    "hungarian": "hu",
    "icelandic": "is",
    "indonesian": "id",
    "italian": "it",
    "japanese": "ja",
    "javanese": "jv",
    "kannada": "kn",
    "kazakh": "kk",
    "khmer": "km",
    "korean": "ko",
    "lao": "lo",
    "latin": "la",
    "latvian": "lv",
    "letzeburgesch": "lb",
    "lingala": "ln",
    "lithuanian": "lt",
    "luxembourgish": "lb",
    "macedonian": "mk",
    "malagasy": "mg",
    "malay": "ms",
    "malayalam": "ml",
    "maltese": "mt",
    "mandarin": "zh",
    "maori": "mi",
    "marathi": "mr",
    "moldavian": "ro",
    "moldovan": "ro",
    "mongolian": "mn",
    "myanmar": "my",
    "nepali": "ne",
    "norwegian": "no",
    "nynorsk": "nn",
    "occitan": "oc",
    "panjabi": "pa",
    "pashto": "ps",
    "persian": "fa",
    "polish": "pl",
    "portuguese": "pt",
    "punjabi": "pa",
    "pushto": "ps",
    "romanian": "ro",
    "russian": "ru",
    "sanskrit": "sa",
    "serbian": "sr",
    "shona": "sn",
    "sindhi": "sd",
    "sinhala": "si",
    "sinhalese": "si",
    "slovak": "sk",
    "slovenian": "sl",
    "somali": "so",
    "spanish": "es",
    "sundanese": "su",
    "swahili": "sw",
    "swedish": "sv",
    "tagalog": "tl",
    "tajik": "tg",
    "tamil": "ta",
    "tatar": "tt",
    "telugu": "te",
    "thai": "th",
    "tibetan": "bo",
    "turkish": "tr",
    "turkmen": "tk",
    "ukrainian": "uk",
    "urdu": "ur",
    "uzbek": "uz",
    "valencian": "ca",
    "vietnamese": "vi",
    "welsh": "cy",
    "yiddish": "yi",
    "yoruba": "yo",
}


def normalize_language_code(value: Optional[str], default: str = "en") -> str:
    """
    Normalize a provider language label to an ISO-639-1 code.

    Accepts codes ("es", "es-ES", "pt_BR") and Whisper language names
    ("spanish"). Anything else becomes ``default``.
    """
    if not value:
        return default
    lowered = value.strip().lower()
    if lowered in WHISPER_LANGUAGE_CODES:
        return WHISPER_LANGUAGE_CODES[lowered]
    code = lowered.replace("_", "-").split("-")[0]
    if 2 <= len(code) <= 3 and code.isalpha():
        return code
    return default
