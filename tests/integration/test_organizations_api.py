"""
Integration tests for organization API endpoints.
"""
import uuid

from fastapi.testclient import TestClient

from ledgerline.models.organization import OrganizationRole
from ledgerline.services.organization_service import add_member

ORGS_URL = "/api/v1/organizations"


class TestCreateOrganization:
    """Tests for POST /organizations."""

    def test_create(self, client: TestClient, auth_headers):
        response = client.post(
            ORGS_URL,
            json={"name": "Sharma Traders", "description": "Family business"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Sharma Traders"
        assert data["slug"] == "sharma-traders"
        assert data["member_count"] == 1
        assert data["is_active"] is True

    def test_creator_is_owner(self, client: TestClient, auth_headers, user):
        org_id = client.post(ORGS_URL, json={"name": "Sharma Traders"}, headers=auth_headers).json()["id"]

        members = client.get(f"{ORGS_URL}/{org_id}/members", headers=auth_headers).json()

        assert len(members) == 1
        assert members[0]["email"] == user.email
        assert members[0]["role"] == "owner"

    def test_invalid_slug(self, client: TestClient, auth_headers):
        response = client.post(ORGS_URL, json={"name": "Acme", "slug": "Not Valid!"}, headers=auth_headers)
        assert response.status_code == 422

    def test_requires_authentication(self, client: TestClient):
        response = client.post(ORGS_URL, json={"name": "Acme"})
        assert response.status_code == 401


class TestReadOrganizations:
    """Tests for GET /organizations and GET /organizations/{id}."""

    def test_list_only_memberships(self, client: TestClient, auth_headers, organization, make_organization, other_user):
        make_organization(other_user, name="Not Mine")

        response = client.get(ORGS_URL, headers=auth_headers)

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [str(organization.id)]

    def test_get_as_member(self, client: TestClient, auth_headers, organization):
        response = client.get(f"{ORGS_URL}/{organization.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["name"] == organization.name

    def test_get_as_outsider_is_not_found(self, client: TestClient, other_auth_headers, organization):
        response = client.get(f"{ORGS_URL}/{organization.id}", headers=other_auth_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "LL-300"

    def test_get_unknown(self, client: TestClient, auth_headers):
        response = client.get(f"{ORGS_URL}/{uuid.uuid4()}", headers=auth_headers)
        assert response.status_code == 404


class TestMembers:
    """Tests for organization member endpoints."""

    def test_owner_adds_member(self, client: TestClient, auth_headers, organization, other_user):
        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": "Outsider@Example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == str(other_user.id)
        assert data["role"] == "member"

    def test_new_member_can_extract(self, client: TestClient, auth_headers, other_auth_headers, organization, other_user):
        client.post(f"{ORGS_URL}/{organization.id}/members", json={"email": other_user.email}, headers=auth_headers)

        response = client.post(
            "/api/v1/transactions/extract",
            json={"text": "Uber ride ₹180", "organizationId": str(organization.id)},
            headers=other_auth_headers,
        )
        assert response.status_code == 201

    def test_owner_role_cannot_be_granted(self, client: TestClient, auth_headers, organization, other_user):
        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": other_user.email, "role": "owner"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_unknown_user(self, client: TestClient, auth_headers, organization):
        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": "nobody@example.com"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_existing_member(self, client: TestClient, auth_headers, organization, user):
        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": user.email},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "LL-302"

    def test_plain_member_cannot_add(
        self, client: TestClient, db_session, organization, make_user, make_headers, other_user
    ):
        plain = make_user(email="plain@example.com")
        add_member(db_session, organization, plain, OrganizationRole.MEMBER)

        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": other_user.email},
            headers=make_headers(plain),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "LL-601"

    def test_admin_can_add(self, client: TestClient, db_session, organization, make_user, make_headers, other_user):
        admin = make_user(email="admin@example.com")
        add_member(db_session, organization, admin, OrganizationRole.ADMIN)

        response = client.post(
            f"{ORGS_URL}/{organization.id}/members",
            json={"email": other_user.email, "role": "admin"},
            headers=make_headers(admin),
        )

        assert response.status_code == 201
        assert response.json()["role"] == "admin"

    def test_outsider_cannot_list_members(self, client: TestClient, other_auth_headers, organization):
        response = client.get(f"{ORGS_URL}/{organization.id}/members", headers=other_auth_headers)
        assert response.status_code == 404
