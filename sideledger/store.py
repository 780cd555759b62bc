import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

import structlog

from .errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .logic import (
    validate_amount,
    validate_category,
    validate_date,
    validate_status,
    validate_text,
    validate_type,
)
from .models import MEMBER, PENDING, PERSONAL_SOURCE_ID, Transaction, User
from .sources import SourceRegistry


logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = {
    "amount": ("amount", validate_amount),
    "type": ("type", validate_type),
    "category": ("category", validate_category),
    "description": ("description", lambda v: validate_text(v, "description")),
    "date": ("date", validate_date),
    "sourceId": ("source_id", lambda v: validate_text(v, "sourceId", required=True)),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_instant(moment: datetime) -> str:
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _collect(errors: dict, field: str, validator, value):
    try:
        return validator(value)
    except ValueError as exc:
        errors[field] = str(exc)
        return None


class TransactionStore:
    """In-memory owner of transactions and known users.

    Records handed out are frozen dataclasses; status changes swap the stored
    record for an updated copy, so callers never alias the store's state.
    """

    def __init__(
        self,
        *,
        sources: SourceRegistry | None = None,
        enforce_owner: bool = True,
        clock=_utc_now,
    ):
        self._lock = threading.Lock()
        self._txns: list[Transaction] = []
        self._index: dict[str, int] = {}
        self._users: dict[str, User] = {}
        self._sources = sources
        self._enforce_owner = enforce_owner
        self._clock = clock

    def register_user(self, user_id: str, role: str = MEMBER) -> User:
        user_id = validate_text(user_id, "user id", required=True).strip()
        user = User(id=user_id, role=role)
        with self._lock:
            self._users[user_id] = user
        return user

    def resolve_caller(self, token: str | None) -> User:
        if token is None or not token.strip():
            raise AuthenticationError("Unauthorized")
        user_id = token.strip()
        with self._lock:
            return self._users.get(user_id) or User(id=user_id)

    def _new_id(self) -> str:
        while True:
            candidate = uuid.uuid4().hex[:12]
            if candidate not in self._index:
                return candidate

    def create_txn(self, payload: dict, caller: User) -> Transaction:
        errors: dict[str, str] = {}
        amount = _collect(errors, "amount", validate_amount, payload.get("amount"))
        txn_type = _collect(errors, "type", validate_type, payload.get("type"))
        category = _collect(errors, "category", validate_category, payload.get("category"))
        description = _collect(
            errors,
            "description",
            lambda v: validate_text(v, "description"),
            payload.get("description"),
        )
        date_str = _collect(errors, "date", validate_date, payload.get("date"))
        user_id = _collect(
            errors,
            "userId",
            lambda v: validate_text(v, "userId", required=True),
            payload.get("userId"),
        )
        if user_id is not None and self._enforce_owner and user_id != caller.id:
            errors["userId"] = "userId must match the caller"

        source_id = payload.get("sourceId")
        if source_id is None:
            source_id = PERSONAL_SOURCE_ID
        else:
            source_id = _collect(
                errors,
                "sourceId",
                lambda v: validate_text(v, "sourceId", required=True),
                source_id,
            )

        if errors:
            raise ValidationError(errors)

        self._warn_unknown_source(user_id, source_id)
        with self._lock:
            txn = Transaction(
                id=self._new_id(),
                amount=amount,
                type=txn_type,
                source_id=source_id,
                category=category,
                description=description,
                date=date_str,
                user_id=user_id,
                status=PENDING,
                created_at=_iso_instant(self._clock()),
            )
            self._index[txn.id] = len(self._txns)
            self._txns.append(txn)

        logger.info(
            "transaction_created",
            transaction_id=txn.id,
            user_id=txn.user_id,
            source_id=txn.source_id,
            type=txn.type,
        )
        return txn

    def list_txns_for_caller(self, caller: User) -> list[Transaction]:
        with self._lock:
            return [txn for txn in self._txns if txn.user_id == caller.id]

    def get_txn(self, txn_id: str) -> Transaction:
        with self._lock:
            position = self._index.get(txn_id)
            if position is None:
                raise NotFoundError("Transaction not found")
            return self._txns[position]

    def set_status(self, txn_id: str, new_status, caller: User) -> Transaction:
        if not caller.is_admin:
            raise AuthorizationError("Forbidden")
        try:
            status = validate_status(new_status)
        except ValueError as exc:
            raise ValidationError({"status": str(exc)}, "Invalid status") from exc

        with self._lock:
            position = self._index.get(txn_id)
            if position is None:
                raise NotFoundError("Transaction not found")
            previous = self._txns[position]
            # Finalised transactions may be moved again; no terminal-state guard.
            updated = replace(previous, status=status)
            self._txns[position] = updated

        logger.info(
            "transaction_status_changed",
            transaction_id=txn_id,
            previous_status=previous.status,
            status=status,
            admin_id=caller.id,
        )
        return updated

    def _owned_position(self, txn_id: str, caller: User) -> int:
        # caller holds the lock; other users' transactions look absent
        position = self._index.get(txn_id)
        if position is None or self._txns[position].user_id != caller.id:
            raise NotFoundError("Transaction not found")
        return position

    def update_txn(self, txn_id: str, changes: dict, caller: User) -> Transaction:
        with self._lock:
            self._owned_position(txn_id, caller)

        errors: dict[str, str] = {}
        updates = {}
        for key, (attr, validator) in EDITABLE_FIELDS.items():
            if key in changes:
                value = _collect(errors, key, validator, changes[key])
                if key not in errors:
                    updates[attr] = value
        if errors:
            raise ValidationError(errors)

        if "source_id" in updates:
            self._warn_unknown_source(caller.id, updates["source_id"])
        with self._lock:
            position = self._owned_position(txn_id, caller)
            updated = replace(self._txns[position], **updates)
            self._txns[position] = updated

        logger.info(
            "transaction_updated",
            transaction_id=txn_id,
            fields=sorted(updates),
        )
        return updated

    def _warn_unknown_source(self, owner_id: str, source_id: str) -> None:
        if self._sources is None:
            return
        if self._sources.get_source(owner_id, source_id) is None:
            logger.warning(
                "unknown_source_reference", owner_id=owner_id, source_id=source_id
            )
