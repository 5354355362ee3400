"""
tests/unit/conftest.py — Shared fixtures: AWS env, a moto single table, repositories.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import boto3
import pytest
from club_access import config
from club_access.models import AuthContext, SystemRole
from club_access.storage import (
    DynamoDBClubRepository,
    DynamoDBMembershipRepository,
    DynamoDBUserRepository,
)
from moto import mock_aws

REGION = "eu-west-2"
TABLE_NAME = "club-access-test"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Set minimal AWS env vars required by the library and moto."""
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("MAIN_TABLE_NAME", TABLE_NAME)
    config.reset_dynamodb()
    yield
    config.reset_dynamodb()


def _gsi(name: str) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": [
            {"AttributeName": f"{name}PK", "KeyType": "HASH"},
            {"AttributeName": f"{name}SK", "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


@pytest.fixture
def dynamodb() -> Iterator[Any]:
    """A moto DynamoDB resource with the single table (PK/SK, GSI1, GSI2) created."""
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name=REGION)
        resource.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": attr, "AttributeType": "S"}
                for attr in ("PK", "SK", "GSI1PK", "GSI1SK", "GSI2PK", "GSI2SK")
            ],
            GlobalSecondaryIndexes=[_gsi("GSI1"), _gsi("GSI2")],
            BillingMode="PAY_PER_REQUEST",
        )
        yield resource


@pytest.fixture
def table(dynamodb: Any) -> Any:
    return dynamodb.Table(TABLE_NAME)


@pytest.fixture
def user_repo(dynamodb: Any) -> DynamoDBUserRepository:
    return DynamoDBUserRepository(table_name=TABLE_NAME, dynamodb_resource=dynamodb)


@pytest.fixture
def club_repo(dynamodb: Any) -> DynamoDBClubRepository:
    return DynamoDBClubRepository(table_name=TABLE_NAME, dynamodb_resource=dynamodb)


@pytest.fixture
def membership_repo(
    dynamodb: Any, user_repo: DynamoDBUserRepository
) -> DynamoDBMembershipRepository:
    return DynamoDBMembershipRepository(
        user_repository=user_repo, table_name=TABLE_NAME, dynamodb_resource=dynamodb
    )


@pytest.fixture
def site_admin() -> AuthContext:
    return AuthContext(user_id="admin-1", email="admin@example.com", system_role=SystemRole.SITE_ADMIN)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
