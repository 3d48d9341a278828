"""
Sentiment scoring for listing text, backed by NLTK's VADER analyzer.

sentiment_score returns VADER's compound polarity, a float in [-1.0, 1.0]:
negative values mean negative wording, positive values positive wording and
0.0 neutral or empty text. The same function builds the fraud training
features and scores listings at inference, so the convention is stable.

The VADER lexicon is downloaded on first use if NLTK cannot find it.
"""

from functools import lru_cache

import nltk
from nltk.sentiment.vader import SentimentIntensityAnalyzer

from directrent.logging_config import get_logger

logger = get_logger(__name__)

VADER_RESOURCE = "sentiment/vader_lexicon.zip"
VADER_PACKAGE = "vader_lexicon"


def ensure_vader_lexicon() -> None:
    """Download the VADER lexicon if it is not installed yet."""
    try:
        nltk.data.find(VADER_RESOURCE)
    except LookupError:
        logger.info("Downloading NLTK resource: %s", VADER_PACKAGE)
        nltk.download(VADER_PACKAGE, quiet=True)


@lru_cache(maxsize=1)
def get_analyzer() -> SentimentIntensityAnalyzer:
    ensure_vader_lexicon()
    return SentimentIntensityAnalyzer()


def sentiment_score(text: str) -> float:
    """Compound polarity of a text.

    Example:
        >>> sentiment_score("lovely bright flat") > 0
        True
        >>> sentiment_score("")
        0.0
    """
    if text is None:
        return 0.0
    text = str(text).strip()
    if not text:
        return 0.0
    return float(get_analyzer().polarity_scores(text)["compound"])
