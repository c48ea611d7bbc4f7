"""
Demo data for local development.
Creates one agency organization, an owner user, three business profiles
(two opted into analytics), a few posts, reviews and answered questions,
then backfills placeholder insights for the opted-in profiles.
"""
import asyncio
import random
from datetime import datetime, timedelta

from sqlalchemy import select

from gbp_manager.database import AsyncSessionLocal, init_models
from gbp_manager.log_config import configure_logging
from gbp_manager.models import (
    Answer,
    BusinessProfile,
    Organization,
    Post,
    PostMetrics,
    Question,
    Review,
    User,
)
from gbp_manager.services.insights import sync_insights_data
from gbp_manager.services.sentiment import rating_based_sentiment

DEMO_EMAIL = "owner@demo-agency.test"

LOCATIONS = [
    {"name": "Harbor Coffee - Downtown", "city": "Portland", "selected": True},
    {"name": "Harbor Coffee - Pearl District", "city": "Portland", "selected": True},
    {"name": "Harbor Coffee - Airport Kiosk", "city": "Portland", "selected": False},
]

REVIEW_TEXT = {
    1: ["Cold coffee and a long wait.", "Would not come back."],
    2: ["Service was slow today.", "Pastries were stale."],
    3: ["Decent espresso, nothing special.", "Fine for a quick stop."],
    4: ["Friendly staff and good lattes.", "Nice place to work from."],
    5: ["Best cold brew in town!", "Always a great experience."],
}

POST_TEXT = [
    "New seasonal menu is here: maple oat latte and pumpkin bread.",
    "Happy hour every weekday 2-4pm, half off all drip coffee.",
    "We are hiring baristas! Stop by and ask for the manager.",
]


async def seed():
    configure_logging()
    await init_models()
    rng = random.Random(42)
    now = datetime.utcnow()

    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(User).where(User.email == DEMO_EMAIL))
        if existing.scalar_one_or_none():
            print("Demo data already present, skipping.")
            return

        org = Organization(name="Demo Agency", type="AGENCY", settings={"timezone": "America/Los_Angeles"})
        db.add(org)
        await db.flush()
        user = User(organization_id=org.id, email=DEMO_EMAIL, name="Demo Owner", role="AGENCY_OWNER")
        db.add(user)

        review_count = 0
        for idx, loc in enumerate(LOCATIONS, start=1):
            profile = BusinessProfile(
                organization_id=org.id,
                google_business_id=f"demo-{idx}",
                google_location_name=f"accounts/demo/locations/demo-{idx}",
                name=loc["name"],
                address={"addressLines": [f"{100 * idx} Main St"], "locality": loc["city"], "regionCode": "US"},
                phone_number=f"+1 503-555-01{idx:02d}",
                website="https://harbor-coffee.example",
                is_verified=True,
                categories=[{"displayName": "Coffee shop"}],
                selected_for_analytics=loc["selected"],
                last_sync_at=now,
            )
            db.add(profile)
            await db.flush()

            for n, content in enumerate(POST_TEXT):
                post = Post(
                    business_profile_id=profile.id,
                    content=content,
                    status="PUBLISHED",
                    published_at=now - timedelta(days=3 * n + idx),
                    created_by=user.id,
                )
                post.metrics = PostMetrics(views=rng.randint(20, 400), clicks=rng.randint(0, 40))
                db.add(post)

            for n in range(rng.randint(4, 8)):
                rating = rng.choices([1, 2, 3, 4, 5], weights=[5, 8, 15, 32, 40])[0]
                content = rng.choice(REVIEW_TEXT[rating])
                db.add(Review(
                    business_profile_id=profile.id,
                    google_review_id=f"demo-{idx}-review-{n}",
                    reviewer_name=rng.choice(["Alex P.", "Sam R.", "Jordan K.", "Taylor M."]),
                    rating=rating,
                    content=content,
                    published_at=now - timedelta(days=rng.randint(0, 60)),
                    sentiment=rating_based_sentiment(rating, content).value,
                    is_verified=True,
                ))
                review_count += 1

            question = Question(
                business_profile_id=profile.id,
                google_question_id=f"demo-{idx}-question-1",
                author_name="Chris",
                content="Do you have oat milk?",
                status="ANSWERED",
                published_at=now - timedelta(days=10),
            )
            question.answer = Answer(content="Yes, oat and almond milk at no extra charge.", created_by=user.id)
            db.add(question)

        await db.commit()
        result = await sync_insights_data(db, user.id, rng=rng)

    print(f"\n{'='*60}")
    print("DEMO SEEDING COMPLETE")
    print(f"{'='*60}")
    print(f"  {len(LOCATIONS)} profiles | {review_count} reviews | {len(LOCATIONS) * len(POST_TEXT)} posts")
    print(f"  {result.rows_created} insight rows for {result.profiles_processed} opted-in profiles")
    print(f"  login: {DEMO_EMAIL}")


if __name__ == "__main__":
    asyncio.run(seed())
