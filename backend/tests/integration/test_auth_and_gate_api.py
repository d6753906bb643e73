"""
API tests for sign-up and sessions, the subscription gate and the
subscription administration endpoints.
"""

import pytest

from dentos.repositories.auth_provider import LocalAuthProvider
from tests.fixtures.api_helpers import DENTIST_PASSWORD, create_patient, register_dentist


@pytest.mark.integration
@pytest.mark.api
class TestAuthApi:
    def test_register_starts_a_seven_day_trial(self, client):
        data = register_dentist(client, clinic_name="Consultorio Centro")

        assert data["user"]["email"] == "dra.perez@example.com"
        assert data["profile"]["subscription_status"] == "trial"
        assert data["profile"]["trial_ends_at"].startswith("2025-03-17T12:00:00")

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.get_json()["data"]["days_remaining"] == 7
        assert me.get_json()["data"]["profile"]["clinic_name"] == "Consultorio Centro"

    def test_register_rejects_bad_payload(self, client):
        resp = client.post(
            "/auth/register",
            json={"email": "no-es-email", "password": DENTIST_PASSWORD, "display_name": "Ana", "license_number": "MP-1"},
        )
        assert resp.status_code == 400
        assert resp.get_json()["data"]["field"] == "email"

    def test_duplicate_email(self, client, app):
        register_dentist(client)
        other = app.test_client()
        resp = other.post(
            "/auth/register",
            json={
                "email": "dra.perez@example.com",
                "password": DENTIST_PASSWORD,
                "display_name": "Otra Perez",
                "license_number": "MP-99999",
            },
        )
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_logout_then_login(self, dentist_client):
        assert dentist_client.post("/auth/logout").status_code == 200
        assert dentist_client.get("/auth/me").status_code == 401

        resp = dentist_client.post(
            "/auth/login", json={"email": "dra.perez@example.com", "password": DENTIST_PASSWORD}
        )
        assert resp.status_code == 200
        assert dentist_client.get("/auth/me").status_code == 200

    def test_wrong_password(self, dentist_client):
        dentist_client.post("/auth/logout")
        resp = dentist_client.post(
            "/auth/login", json={"email": "dra.perez@example.com", "password": "incorrecta1"}
        )
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Email o contraseña incorrectos"

    def test_profile_update_ignores_subscription_fields(self, dentist_client):
        resp = dentist_client.put(
            "/auth/me", json={"clinic_name": "Sede Norte", "subscription_status": "active"}
        )
        assert resp.status_code == 200
        profile = resp.get_json()["data"]["profile"]
        assert profile["clinic_name"] == "Sede Norte"
        assert profile["subscription_status"] == "trial"

    def test_password_reset(self, dentist_client, reset_tokens):
        resp = dentist_client.post("/auth/password-reset", json={"email": "dra.perez@example.com"})
        assert resp.status_code == 200
        assert len(reset_tokens) == 1
        email, token = reset_tokens[0]
        assert email == "dra.perez@example.com"

        resp = dentist_client.post(
            "/auth/password-reset/confirm", json={"token": token, "password": "nueva12345"}
        )
        assert resp.status_code == 200

        dentist_client.post("/auth/logout")
        resp = dentist_client.post(
            "/auth/login", json={"email": "dra.perez@example.com", "password": "nueva12345"}
        )
        assert resp.status_code == 200

    def test_password_reset_for_unknown_email_looks_the_same(self, client, reset_tokens):
        resp = client.post("/auth/password-reset", json={"email": "nadie@example.com"})
        assert resp.status_code == 200
        assert reset_tokens == []

    def test_invalid_reset_token(self, client):
        resp = client.post(
            "/auth/password-reset/confirm", json={"token": "not-a-token", "password": "nueva12345"}
        )
        assert resp.status_code == 401


@pytest.mark.integration
@pytest.mark.api
class TestSubscriptionGate:
    def test_anonymous_is_sent_to_login(self, client):
        resp = client.get("/patients")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/login")

    def test_landing_pages_are_open(self, client):
        assert client.get("/login").status_code == 200
        assert client.get("/register").status_code == 200

    def test_account_without_profile_is_blocked(self, app, db_session):
        LocalAuthProvider(db_session).register("sin.perfil@example.com", DENTIST_PASSWORD, "Sin Perfil")
        client = app.test_client()
        resp = client.post(
            "/auth/login", json={"email": "sin.perfil@example.com", "password": DENTIST_PASSWORD}
        )
        assert resp.status_code == 200

        blocked = client.get("/patients")
        assert blocked.status_code == 204
        assert blocked.data == b""

    def test_expired_trial_is_redirected(self, dentist_client, clock):
        create_patient(dentist_client)
        clock.advance(days=8)

        resp = dentist_client.get("/patients")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/subscription-expired")

        notice = dentist_client.get("/subscription-expired")
        assert notice.status_code == 200
        assert notice.get_json()["data"]["is_entitled"] is False

    def test_last_trial_instant_is_still_allowed(self, dentist_client, clock):
        clock.advance(days=7)
        assert dentist_client.get("/patients").status_code == 200

    def test_health_and_auth_are_not_gated(self, dentist_client, clock):
        clock.advance(days=30)
        assert dentist_client.get("/health").status_code == 200
        assert dentist_client.get("/auth/me").status_code == 200


@pytest.mark.integration
@pytest.mark.api
class TestAdminApi:
    def test_activate_extend_and_cancel(self, admin_client, dentist_client, clock):
        uid = dentist_client.dentist["user"]["uid"]

        resp = admin_client.post(f"/admin/dentists/{uid}/activate", json={"plan_type": "monthly"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["subscription_status"] == "active"
        assert data["plan_type"] == "monthly"
        assert data["days_remaining"] == 30

        # A paid period outlives the trial
        clock.advance(days=8)
        assert dentist_client.get("/patients").status_code == 200

        resp = admin_client.post(f"/admin/dentists/{uid}/extend", json={"months": 2})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["days_remaining"] == 82

        resp = admin_client.post(f"/admin/dentists/{uid}/cancel")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["is_entitled"] is False
        assert dentist_client.get("/patients").status_code == 302

    def test_activating_twice_conflicts(self, admin_client, dentist_client):
        uid = dentist_client.dentist["user"]["uid"]
        admin_client.post(f"/admin/dentists/{uid}/activate", json={"plan_type": "annual"})
        resp = admin_client.post(f"/admin/dentists/{uid}/activate", json={"plan_type": "monthly"})
        assert resp.status_code == 409

    def test_extend_requires_active_subscription(self, admin_client, dentist_client):
        uid = dentist_client.dentist["user"]["uid"]
        resp = admin_client.post(f"/admin/dentists/{uid}/extend", json={"months": 1})
        assert resp.status_code == 409

    def test_invalid_plan(self, admin_client, dentist_client):
        uid = dentist_client.dentist["user"]["uid"]
        resp = admin_client.post(f"/admin/dentists/{uid}/activate", json={"plan_type": "weekly"})
        assert resp.status_code == 400
        assert resp.get_json()["data"]["field"] == "plan_type"

    def test_unknown_dentist(self, admin_client):
        resp = admin_client.post("/admin/dentists/missing/cancel")
        assert resp.status_code == 404

    def test_non_admin_is_forbidden(self, dentist_client):
        uid = dentist_client.dentist["user"]["uid"]
        resp = dentist_client.post(f"/admin/dentists/{uid}/activate", json={"plan_type": "monthly"})
        assert resp.status_code == 403
        assert dentist_client.get("/admin/dentists").status_code == 403

    def test_list_dentists(self, admin_client, dentist_client):
        resp = admin_client.get("/admin/dentists")
        assert resp.status_code == 200
        emails = {d["email"] for d in resp.get_json()["data"]}
        assert emails == {"admin@dentos.app", "dra.perez@example.com"}
