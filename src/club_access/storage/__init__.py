"""
club_access.storage — Single-table DynamoDB repositories.
"""

from club_access.storage.clubs import DynamoDBClubRepository
from club_access.storage.interfaces import IClubRepository, IMembershipRepository, IUserRepository
from club_access.storage.memberships import DynamoDBMembershipRepository
from club_access.storage.users import DynamoDBUserRepository

__all__ = [
    "DynamoDBClubRepository",
    "DynamoDBMembershipRepository",
    "DynamoDBUserRepository",
    "IClubRepository",
    "IMembershipRepository",
    "IUserRepository",
]
