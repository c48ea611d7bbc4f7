"""Unit tests for Google location payloads and review page stats."""

from datetime import datetime

from gbp_manager.models import Review, ReviewResponse
from gbp_manager.services.profiles import location_payload, update_mask
from gbp_manager.services.reviews import calculate_review_stats


class TestLocationPayload:
    def test_maps_columns_to_business_information_fields(self):
        payload = location_payload({
            "name": "Harbor Bakery",
            "description": "Sourdough",
            "phone_number": "+1 555 0100",
            "website": "https://harbor.example",
            "address": {"locality": "Portland"},
            "categories": [{"name": "categories/gcid:bakery"}, {"name": "categories/gcid:cafe"}],
            "email": "not-sent@harbor.example",
        })

        assert payload == {
            "title": "Harbor Bakery",
            "profile": {"description": "Sourdough"},
            "phoneNumbers": {"primaryPhone": "+1 555 0100"},
            "websiteUri": "https://harbor.example",
            "storefrontAddress": {"locality": "Portland"},
            "categories": {
                "primaryCategory": {"name": "categories/gcid:bakery"},
                "additionalCategories": [{"name": "categories/gcid:cafe"}],
            },
        }

    def test_cleared_values_are_dropped(self):
        assert location_payload({"description": None, "phone_number": "", "categories": []}) == {}

    def test_update_mask_follows_sent_fields(self):
        assert update_mask({"website": "x", "name": "y", "email": "z"}) == "title,websiteUri"
        assert update_mask({}) == ""


def review(rating, status="NEW", sentiment=None, replied=False) -> Review:
    item = Review(rating=rating, status=status, sentiment=sentiment, published_at=datetime(2024, 3, 1))
    if replied:
        item.response = ReviewResponse(content="Thanks")
    return item


class TestReviewStats:
    def test_empty_page(self):
        stats = calculate_review_stats([])
        assert stats.total == 0
        assert stats.average_rating == 0.0
        assert stats.sentiment_breakdown == {"POSITIVE": 0, "NEUTRAL": 0, "NEGATIVE": 0}

    def test_response_rate_rounds_half_up(self):
        reviews = [review(5, replied=True), review(4, status="RESPONDED")] + [review(3) for _ in range(6)]

        stats = calculate_review_stats(reviews)

        # 2 of 8 is 25%; 1 of 8 would be 12.5% -> 13
        assert stats.response_rate == 25
        assert calculate_review_stats([review(5, replied=True)] + [review(3) for _ in range(7)]).response_rate == 13

    def test_breakdowns(self):
        stats = calculate_review_stats([review(5, sentiment="POSITIVE"), review(1, sentiment="NEGATIVE"), review(1)])
        assert stats.total == 3
        assert stats.average_rating == 7 / 3
        assert stats.rating_breakdown == {1: 2, 2: 0, 3: 0, 4: 0, 5: 1}
        assert stats.sentiment_breakdown["NEGATIVE"] == 1
