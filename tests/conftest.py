import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from app.core.config import Settings
from app.main import create_app


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real AWS account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DYNAMO_REGION="us-east-1",
        DYNAMO_CREATE_TABLES=True,
        S3_REGION="us-east-1",
        S3_BUCKET_NAME="test-profile-images",
        JWT_SECRET_KEY="testsecretkey",
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def client(settings):
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=settings.S3_BUCKET_NAME)
        with TestClient(create_app(settings)) as test_client:
            yield test_client


@pytest.fixture
def sign_up(client):
    """Register a user through the API and return the response body."""

    def _sign_up(email="john@example.com", password="pw123456", name="John"):
        res = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        return res.json()

    return _sign_up


@pytest.fixture
def auth_headers(sign_up):
    body = sign_up()
    return {"Authorization": f"Bearer {body['token']}"}
