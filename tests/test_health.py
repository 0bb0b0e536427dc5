from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from pool_manager.main import APP_NAME, app
from pool_manager.services.storage_service import S3StorageService, get_storage_service


class _DeniedClient:
    def head_bucket(self, Bucket):
        raise ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadBucket")


def test_health_without_storage(client: TestClient):
    """Diagnostic endpoint reports the running build"""
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["app_name"] == APP_NAME
    assert data["status"] == "healthy"
    assert data["storage"] == "not_configured"
    assert data["build_hash"]


def test_health_reports_unreachable_bucket(client: TestClient):
    app.dependency_overrides[get_storage_service] = lambda: S3StorageService("pool-bucket", client=_DeniedClient())

    assert client.get("/api/health").json()["storage"] == "unavailable"
