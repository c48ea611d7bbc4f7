"""
Review rating helpers.

Sentiment is derived from the star rating only; review text is not analysed.
Anything that needs sentiment takes a ``SentimentClassifier`` so a text-based
model can replace ``rating_based_sentiment`` without touching call sites.
"""
from typing import Callable, Optional

from gbp_manager.schemas import Sentiment

SentimentClassifier = Callable[[int, Optional[str]], Sentiment]

STAR_RATINGS = {
    "ONE": 1,
    "TWO": 2,
    "THREE": 3,
    "FOUR": 4,
    "FIVE": 5,
}
DEFAULT_RATING = 3


def star_rating_to_int(star_rating: Optional[str]) -> int:
    """Google's STAR_RATING enum to 1..5. Unknown or missing values map to 3."""
    if not star_rating:
        return DEFAULT_RATING
    return STAR_RATINGS.get(str(star_rating).upper(), DEFAULT_RATING)


def rating_based_sentiment(rating: int, content: Optional[str] = None) -> Sentiment:
    if rating >= 4:
        return Sentiment.POSITIVE
    if rating <= 2:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL
