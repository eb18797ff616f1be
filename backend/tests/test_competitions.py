"""
Tests for competitions: listing, detail, registration workflow and admin CRUD.
"""

from datetime import timedelta

import pytest

from conftest import bearer
from rest_api.models import Category, Competition, CompetitionParticipant, utcnow
from rest_api.services.domain import CompetitionService, check_schedule
from shared.utils.exceptions import ValidationError


def _iso(dt) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def _competition_payload(category_id: int, **overrides) -> dict:
    now = utcnow()
    payload = {
        "title": "Code Sprint",
        "description": "Two days of code",
        "category": category_id,
        "rules": "Teams of three",
        "prizes": "Glory",
        "startDate": _iso(now + timedelta(days=10)),
        "endDate": _iso(now + timedelta(days=12)),
        "registrationDeadline": _iso(now + timedelta(days=5)),
        "maxParticipants": 50,
    }
    payload.update(overrides)
    return payload


class TestScheduleRules:
    """check_schedule() date invariants."""

    def test_valid_schedule(self):
        now = utcnow()
        check_schedule(now + timedelta(days=2), now + timedelta(days=3), now + timedelta(days=1))

    def test_end_before_start(self):
        now = utcnow()
        with pytest.raises(ValidationError) as exc:
            check_schedule(now + timedelta(days=2), now + timedelta(days=1), now)
        assert exc.value.detail == "End date must be after start date"

    def test_deadline_after_start(self):
        now = utcnow()
        with pytest.raises(ValidationError) as exc:
            check_schedule(now + timedelta(days=2), now + timedelta(days=3), now + timedelta(days=2))
        assert exc.value.detail == "Registration deadline must be before start date"


class TestListCompetitions:
    """GET /api/competitions"""

    def test_list_empty(self, client):
        response = client.get("/api/competitions")
        assert response.status_code == 200
        assert response.json() == {
            "competitions": [],
            "totalPages": 0,
            "currentPage": 1,
            "totalCompetitions": 0,
        }

    def test_inactive_competitions_are_hidden(self, client, make_competition):
        make_competition("Visible")
        make_competition("Hidden", is_active=False)

        data = client.get("/api/competitions").json()
        assert [c["title"] for c in data["competitions"]] == ["Visible"]
        assert data["totalCompetitions"] == 1

    def test_newest_first_by_default(self, client, make_competition):
        for title in ("First", "Second", "Third"):
            make_competition(title)

        titles = [c["title"] for c in client.get("/api/competitions").json()["competitions"]]
        assert titles == ["Third", "Second", "First"]

    def test_pagination(self, client, make_competition):
        for i in range(5):
            make_competition(f"Comp {i}")

        data = client.get("/api/competitions", params={"page": 2, "limit": 2}).json()
        assert data["totalPages"] == 3
        assert data["currentPage"] == 2
        assert data["totalCompetitions"] == 5
        assert [c["title"] for c in data["competitions"]] == ["Comp 2", "Comp 1"]

    def test_limit_above_maximum_rejected(self, client):
        response = client.get("/api/competitions", params={"limit": 1000})
        assert response.status_code == 400

    def test_search_matches_title_and_description(self, client, make_competition):
        make_competition("Robotics Cup")
        make_competition("Chess Open", description="Includes a robotics side event")
        make_competition("Poetry Slam")

        data = client.get("/api/competitions", params={"search": "ROBOTICS"}).json()
        assert {c["title"] for c in data["competitions"]} == {"Robotics Cup", "Chess Open"}

    def test_search_treats_wildcards_literally(self, client, make_competition):
        make_competition("Plain")
        data = client.get("/api/competitions", params={"search": "%"}).json()
        assert data["competitions"] == []

    def test_filter_by_category(self, client, db_session, make_competition):
        design = Category(name="Design")
        db_session.add(design)
        db_session.commit()

        make_competition("Code")
        make_competition("Logo Contest", category_id=design.id)

        data = client.get("/api/competitions", params={"category": design.id}).json()
        assert [c["title"] for c in data["competitions"]] == ["Logo Contest"]
        assert data["competitions"][0]["category"] == {"_id": design.id, "name": "Design"}

    def test_filter_by_start_date_range(self, client, make_competition):
        now = utcnow()
        make_competition("Soon", start_date=now + timedelta(days=3), end_date=now + timedelta(days=4),
                         registration_deadline=now + timedelta(days=2))
        make_competition("Later")  # starts in 30 days

        data = client.get(
            "/api/competitions",
            params={"startDate": _iso(now), "endDate": _iso(now + timedelta(days=7))},
        ).json()
        assert [c["title"] for c in data["competitions"]] == ["Soon"]

    def test_sort_popular_and_trending(self, client, db_session, make_competition):
        quiet = make_competition("Quiet")
        busy = make_competition("Busy")
        viewed = make_competition("Viewed")
        busy.registration_count = 7
        viewed.views = 100
        db_session.commit()

        popular = client.get("/api/competitions", params={"sort": "popular"}).json()["competitions"]
        assert popular[0]["title"] == "Busy"

        trending = client.get("/api/competitions", params={"sort": "trending"}).json()["competitions"]
        assert trending[0]["title"] == "Viewed"
        assert trending[-1]["_id"] in {quiet.id, busy.id}

    def test_unknown_sort_rejected(self, client):
        response = client.get("/api/competitions", params={"sort": "random"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "sort"


class TestCompetitionDetail:
    """GET /api/competitions/{id}"""

    def test_detail_counts_views(self, client, seed_competition, seed_category):
        first = client.get(f"/api/competitions/{seed_competition.id}").json()
        second = client.get(f"/api/competitions/{seed_competition.id}").json()
        assert first["views"] == 1
        assert second["views"] == 2
        assert second["category"]["description"] == seed_category.description

    def test_detail_not_found(self, client):
        response = client.get("/api/competitions/9999")
        assert response.status_code == 404
        assert response.json()["message"] == "Competition not found"


class TestRegistration:
    """POST /api/competitions/{id}/register"""

    def test_register_success(self, client, db_session, seed_user, user_headers, seed_competition):
        response = client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Registration successful, pending confirmation"

        db_session.expire_all()
        competition = db_session.get(Competition, seed_competition.id)
        assert competition.registration_count == 1
        assert competition.participants[0].user_id == seed_user.id
        assert competition.participants[0].status == "pending"
        assert competition in db_session.get(type(seed_user), seed_user.id).registered_competitions

    def test_register_requires_auth(self, client, seed_competition):
        response = client.post(f"/api/competitions/{seed_competition.id}/register")
        assert response.status_code == 401

    def test_register_twice(self, client, user_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)
        response = client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "User already registered"

    def test_register_after_deadline(self, client, user_headers, make_competition):
        now = utcnow()
        closed = make_competition("Closed", registration_deadline=now - timedelta(hours=1))
        response = client.post(f"/api/competitions/{closed.id}/register", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Registration deadline has passed"

    def test_register_when_full(self, client, make_user, user_headers, make_competition):
        competition = make_competition("Tiny", max_participants=1)
        other = make_user("other@test.com")
        assert client.post(f"/api/competitions/{competition.id}/register", headers=bearer(other)).status_code == 200

        response = client.post(f"/api/competitions/{competition.id}/register", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Competition is full"

    def test_register_unknown_competition(self, client, user_headers):
        response = client.post("/api/competitions/9999/register", headers=user_headers)
        assert response.status_code == 404

    def test_participants_show_in_detail(self, client, seed_user, user_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)
        detail = client.get(f"/api/competitions/{seed_competition.id}").json()
        assert detail["registrationCount"] == 1
        assert detail["participants"][0]["user"] == seed_user.id
        assert detail["participants"][0]["status"] == "pending"


class TestRegistrationAdmin:
    """Admin views and status changes of registrations."""

    def test_list_registrations(self, client, seed_user, user_headers, admin_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)

        response = client.get(f"/api/competitions/{seed_competition.id}/registrations", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["competitionTitle"] == seed_competition.title
        assert data["participants"][0]["user"]["email"] == seed_user.email
        assert data["participants"][0]["status"] == "pending"

    def test_list_registrations_forbidden_for_users(self, client, user_headers, seed_competition):
        response = client.get(f"/api/competitions/{seed_competition.id}/registrations", headers=user_headers)
        assert response.status_code == 403

    def test_confirm_registration(self, client, db_session, seed_user, user_headers, admin_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)

        response = client.patch(
            f"/api/competitions/{seed_competition.id}/registrations/{seed_user.id}",
            json={"status": "confirmed"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Registration confirmed"
        assert data["participant"]["status"] == "confirmed"

        # Any transition is allowed, including back to pending
        response = client.patch(
            f"/api/competitions/{seed_competition.id}/registrations/{seed_user.id}",
            json={"status": "pending"},
            headers=admin_headers,
        )
        assert response.json()["message"] == "Registration pending"

    def test_invalid_status_rejected(self, client, seed_user, user_headers, admin_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)
        response = client.patch(
            f"/api/competitions/{seed_competition.id}/registrations/{seed_user.id}",
            json={"status": "approved"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_status_for_unregistered_user(self, client, seed_user, admin_headers, seed_competition):
        response = client.patch(
            f"/api/competitions/{seed_competition.id}/registrations/{seed_user.id}",
            json={"status": "confirmed"},
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestCompetitionAdmin:
    """POST/PUT/DELETE /api/competitions"""

    def test_create(self, client, seed_admin, admin_headers, seed_category):
        response = client.post(
            "/api/competitions",
            json=_competition_payload(seed_category.id),
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Code Sprint"
        assert data["category"]["_id"] == seed_category.id
        assert data["createdBy"]["_id"] == seed_admin.id
        assert data["registrationCount"] == 0
        assert data["views"] == 0
        assert data["isActive"] is True

    def test_create_forbidden_for_users(self, client, user_headers, seed_category):
        response = client.post(
            "/api/competitions",
            json=_competition_payload(seed_category.id),
            headers=user_headers,
        )
        assert response.status_code == 403

    def test_create_with_bad_dates(self, client, admin_headers, seed_category):
        now = utcnow()
        response = client.post(
            "/api/competitions",
            json=_competition_payload(seed_category.id, endDate=_iso(now + timedelta(days=1))),
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "End date must be after start date"

    def test_create_with_unknown_category(self, client, admin_headers, seed_category):
        response = client.post(
            "/api/competitions",
            json=_competition_payload(seed_category.id + 100),
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Category not found"

    def test_create_missing_fields(self, client, admin_headers):
        response = client.post("/api/competitions", json={"title": "Only a title"}, headers=admin_headers)
        assert response.status_code == 400
        fields = {err["field"] for err in response.json()["errors"]}
        assert {"description", "category", "rules", "startDate"} <= fields

    def test_update_partial(self, client, admin_headers, seed_competition):
        response = client.put(
            f"/api/competitions/{seed_competition.id}",
            json={"title": "Renamed", "isActive": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Renamed"
        assert data["isActive"] is False
        assert data["rules"] == seed_competition.rules

    def test_update_checks_merged_dates(self, client, admin_headers, seed_competition):
        """Moving the deadline past the existing start date is refused."""
        response = client.put(
            f"/api/competitions/{seed_competition.id}",
            json={"registrationDeadline": _iso(seed_competition.start_date + timedelta(days=1))},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Registration deadline must be before start date"

    def test_update_clears_optional_fields(self, client, user_headers, admin_headers, make_competition):
        competition = make_competition("Capped", max_participants=5, prizes="A trophy")

        response = client.put(
            f"/api/competitions/{competition.id}",
            json={"maxParticipants": None, "prizes": None},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["maxParticipants"] is None
        assert response.json()["prizes"] is None

        # Unlimited again
        assert client.post(f"/api/competitions/{competition.id}/register", headers=user_headers).status_code == 200

    def test_update_cannot_clear_required_fields(self, client, admin_headers, seed_competition):
        response = client.put(
            f"/api/competitions/{seed_competition.id}",
            json={"title": None, "startDate": None},
            headers=admin_headers,
        )
        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation failed"
        assert {err["field"] for err in data["errors"]} == {"title", "startDate"}

    def test_delete(self, client, db_session, seed_user, user_headers, admin_headers, seed_competition):
        client.post(f"/api/competitions/{seed_competition.id}/register", headers=user_headers)

        response = client.delete(f"/api/competitions/{seed_competition.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Competition deleted"

        db_session.expire_all()
        assert db_session.get(Competition, seed_competition.id) is None
        assert db_session.query(CompetitionParticipant).count() == 0
        assert client.get(f"/api/competitions/{seed_competition.id}").status_code == 404


class TestCompetitionService:
    """Service-level rules not reachable through a single request."""

    def test_registration_count_tracks_participants(self, db_session, make_user, seed_competition):
        service = CompetitionService(db_session)
        for i in range(3):
            service.register(seed_competition.id, make_user(f"p{i}@test.com"))

        db_session.refresh(seed_competition)
        assert seed_competition.registration_count == 3
        assert len(seed_competition.participants) == 3

    def test_for_participant_newest_registration_first(self, db_session, seed_user, make_competition):
        service = CompetitionService(db_session)
        first = make_competition("First")
        second = make_competition("Second")
        service.register(first.id, seed_user)
        service.register(second.id, seed_user)

        rows = service.for_participant(seed_user.id)
        assert [competition.title for competition, _ in rows] == ["Second", "First"]
        assert all(participant.status == "pending" for _, participant in rows)
