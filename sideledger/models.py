from dataclasses import dataclass


TRANSACTION_TYPES = ("EXPENSE", "INCOME")

CATEGORIES = (
    "SALARY",
    "FREELANCE",
    "INVESTMENT",
    "FOOD",
    "TRANSPORT",
    "UTILITIES",
    "ENTERTAINMENT",
    "HEALTHCARE",
    "SHOPPING",
    "OTHER",
)

PENDING = "PENDING"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
STATUSES = (PENDING, APPROVED, REJECTED)

ADMIN = "ADMIN"
MEMBER = "USER"

SOURCE_TYPES = ("PERSONAL", "SIDE_HUSTLE")
PERSONAL_SOURCE_ID = "personal"
UNKNOWN_SOURCE_LABEL = "Unknown Source"


@dataclass(frozen=True)
class User:
    id: str
    role: str = MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


@dataclass(frozen=True)
class Source:
    id: str
    name: str
    type: str
    platform: str | None = None
    description: str | None = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "type": self.type}
        if self.platform is not None:
            data["platform"] = self.platform
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: float
    type: str
    source_id: str
    category: str
    description: str
    date: str
    user_id: str
    status: str
    created_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "type": self.type,
            "sourceId": self.source_id,
            "category": self.category,
            "description": self.description,
            "date": self.date,
            "userId": self.user_id,
            "status": self.status,
            "createdAt": self.created_at,
        }
