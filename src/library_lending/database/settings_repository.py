"""
Settings repository: the single row of lending ceilings.

The row is created from the configuration seeds the first time it is read, so
a fresh database behaves exactly like one whose administrator never touched
the settings.
"""

import logging

from sqlalchemy import select

from ..config import get_config
from ..models.settings import LendingPolicy, LendingPolicyUpdate
from .schema import Settings as SettingsDB
from .session import safe_query

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Reads and updates the settings row."""

    def __init__(self, session):
        self.session = session

    def _get_row(self, for_update: bool = False) -> SettingsDB:
        query = (
            select(SettingsDB)
            .order_by(SettingsDB.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to read settings",
        )
        if row is None:
            row = self._seed()
        return row

    def _seed(self) -> SettingsDB:
        config = get_config()
        row = SettingsDB(
            max_borrow_duration=config.default_max_borrow_duration,
            max_borrow_limit=config.default_max_borrow_limit,
            max_extension_limit=config.default_max_extension_limit,
            max_booking_duration=config.default_max_booking_duration,
            max_booking_limit=config.default_max_booking_limit,
        )
        self.session.add(row)
        self.session.flush()
        logger.info("Seeded settings row from configuration defaults")
        return row

    def get_policy(self) -> LendingPolicy:
        return LendingPolicy.model_validate(self._get_row(), from_attributes=True)

    def update_policy(self, changes: LendingPolicyUpdate) -> LendingPolicy:
        """Apply the fields set on ``changes`` and return the resulting policy."""
        row = self._get_row(for_update=True)
        for field, value in changes.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(row, field, value)
        self.session.flush()
        return LendingPolicy.model_validate(row, from_attributes=True)
