from datetime import datetime, timezone

import storage


def test_seed_plans_is_idempotent(db):
    assert storage.seed_plans(db) == 0
    plans = storage.get_all_plans(db)
    assert [p.type for p in plans] == ["free", "basic", "premium", "enterprise"]
    assert [p.monthly_limit for p in plans] == [3, 25, 100, 500]


def test_get_plan_by_type(db):
    assert storage.get_plan_by_type(db, "premium").name == "Teams"
    assert storage.get_plan_by_type(db, "gold") is None


def test_create_user_updates_existing_email(db):
    storage.create_user(db, "u1", "a@example.com", "Ada", "Lovelace")
    user = storage.create_user(db, "u2", "a@example.com", "Augusta")

    assert user.id == "u1"
    assert user.first_name == "Augusta"
    assert user.last_name == "Lovelace"
    assert storage.get_user(db, "u2") is None


def test_free_plan_usage_runs_out(db):
    storage.create_user(db, "u1", "a@example.com")

    assert storage.check_user_subscription(db, "u1") == {"is_subscribed": True, "remaining_usage": 3}
    for _ in range(3):
        storage.increment_user_usage(db, "u1")

    assert storage.check_user_subscription(db, "u1")["remaining_usage"] == 0


def test_unknown_user_has_no_subscription(db):
    assert storage.check_user_subscription(db, "ghost") == {"is_subscribed": False, "remaining_usage": 0}
    assert storage.increment_user_usage(db, "ghost") is None


def test_unknown_plan_is_not_subscribed(db):
    storage.create_user(db, "u1", "a@example.com", current_plan="gold")
    assert storage.check_user_subscription(db, "u1")["is_subscribed"] is False


def test_update_user_plan_resets_usage(db):
    storage.create_user(db, "u1", "a@example.com")
    storage.increment_user_usage(db, "u1")

    user = storage.update_user_plan(db, "u1", "basic")

    assert user.monthly_usage == 0
    assert storage.check_user_subscription(db, "u1")["remaining_usage"] == 25


def test_reset_monthly_usage_only_touches_previous_months(db):
    stale = storage.create_user(db, "old", "old@example.com")
    fresh = storage.create_user(db, "new", "new@example.com")
    stale.monthly_usage = 3
    stale.last_reset_date = datetime(2024, 1, 15)
    fresh.monthly_usage = 2
    fresh.last_reset_date = datetime(2024, 2, 3)
    db.commit()

    reset = storage.reset_monthly_usage(db, now=datetime(2024, 2, 10, tzinfo=timezone.utc))

    assert reset == 1
    assert storage.get_user(db, "old").monthly_usage == 0
    assert storage.get_user(db, "new").monthly_usage == 2


def test_latest_analysis_by_url(db):
    storage.create_seo_analysis(db, "https://a.test/", {"title": "first"}, 10)
    storage.create_seo_analysis(db, "https://a.test/", {"title": "second"}, 20)
    storage.create_seo_analysis(db, "https://b.test/", {}, 0)

    latest = storage.get_seo_analysis_by_url(db, "https://a.test/")

    assert latest.tags == {"title": "second"}
    assert storage.get_seo_analysis_by_url(db, "https://c.test/") is None


def test_recent_and_user_analyses(db):
    storage.create_user(db, "u1", "a@example.com")
    for i in range(4):
        storage.create_seo_analysis(db, f"https://site{i}.test/", {}, i, user_id="u1" if i % 2 else None)

    recent = storage.get_recent_seo_analyses(db, limit=3)
    mine = storage.get_seo_analyses_by_user(db, "u1")

    assert [a.score for a in recent] == [3, 2, 1]
    assert [a.url for a in mine] == ["https://site3.test/", "https://site1.test/"]
    assert recent[0].to_dict()["created_at"]


def test_timestamps_default_to_current_utc_time(db):
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    user = storage.create_user(db, "u1", "a@example.com")

    # sqlite hands timestamps back without an offset
    assert user.created_at.replace(tzinfo=None) >= before.replace(microsecond=0)
    assert storage.utcnow().tzinfo is timezone.utc
