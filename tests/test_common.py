"""
Beneficiary type registry tests - idempotent adds, sorted listing and input checks.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import run
from icp_platform.api.main import create_app
from icp_platform.core.errors import SchemaValidationError, UnauthenticatedError
from icp_platform.core.schema import BENEFICIARY_TYPES, Principal

USER = Principal(uid="u1")


class TestBeneficiaryTypeService:

    def test_add_is_idempotent_and_trimmed(self, container, store):
        first, created = run(container.beneficiary_types.add_type(USER, "  Smallholder farmers "))
        again, created_again = run(container.beneficiary_types.add_type(USER, "Smallholder farmers"))

        assert first == again == {"name": "Smallholder farmers"}
        assert created and not created_again
        assert len(run(store.list(BENEFICIARY_TYPES))) == 1

    def test_list_is_sorted(self, container):
        for name in ("Women", "Children", "Farmers"):
            run(container.beneficiary_types.add_type(USER, name))
        assert run(container.beneficiary_types.list_types()) == ["Children", "Farmers", "Women"]

    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    def test_name_must_be_text(self, container, name):
        with pytest.raises(SchemaValidationError):
            run(container.beneficiary_types.add_type(USER, name))

    def test_add_requires_principal(self, container):
        with pytest.raises(UnauthenticatedError):
            run(container.beneficiary_types.add_type(None, "Women"))


class TestBeneficiaryTypeEndpoints:

    @pytest.fixture
    def client(self, container):
        with TestClient(create_app(container, warm_on_startup=False)) as test_client:
            yield test_client

    def test_created_then_existing(self, client):
        headers = {"X-User-Id": "u1"}

        response = client.post("/v1/common/beneficiary-types", json={"name": "Youth "}, headers=headers)
        assert response.status_code == 201
        assert response.json() == {"name": "Youth"}

        response = client.post("/v1/common/beneficiary-types", json={"name": "Youth"}, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"name": "Youth"}

        assert client.get("/v1/common/beneficiary-types").json() == ["Youth"]

    def test_invalid_and_anonymous_adds(self, client):
        response = client.post("/v1/common/beneficiary-types", json={"name": 7}, headers={"X-User-Id": "u1"})
        assert response.status_code == 400
        assert response.json()["error_type"] == "VALIDATION_ERROR"

        response = client.post("/v1/common/beneficiary-types", json={"name": "Youth"})
        assert response.status_code == 401
