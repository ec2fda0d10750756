import pytest

from config import Settings
from models import UserRef


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        model_name="test-model",
        debounce_seconds=0.01,
        attachment_base_url="https://files.test/attachments",
        attachment_token="test-token",
    )


@pytest.fixture
def alice() -> UserRef:
    return UserRef(phone_number="+15550000001", name="Alice")


@pytest.fixture
def bob() -> UserRef:
    return UserRef(phone_number="+15550000002", name="Bob")
