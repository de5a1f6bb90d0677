"""
Balance scopes and the authenticated actor handed to every ledger operation.

A scope is one of three shapes:

* ``Scope.global_scope()`` - the single-pool variant
* ``Scope.pool_scope(PoolType.TOWN_TICKS)`` - a named pool with no business attached
* ``Scope.business("42", PoolType.BUSINESS)`` - a business-specific pool

Scopes map onto the ``(pool, business_id)`` columns of a balance and have a
string label (``"global"``, ``"town_ticks"``, ``"business:42"``) used for the
``source_pool``/``destination_pool`` fields of transactions.
"""

from dataclasses import dataclass
from typing import Optional

from django.db import models
from django.utils.translation import gettext_lazy as _

from .exceptions import InvalidRequest


class PoolType(models.TextChoices):
    GLOBAL = "global", _("Global")
    TOWN_TICKS = "town_ticks", _("TownTicks platform")
    BUSINESS = "business", _("Business")
    INDIVIDUAL_BUSINESS = "individual_business", _("Individual business")


@dataclass(frozen=True, order=True)
class Scope:
    pool: str = PoolType.GLOBAL.value
    business_id: str = ""

    def __post_init__(self):
        try:
            pool = PoolType(self.pool)
        except ValueError:
            raise InvalidRequest(f"Unknown pool: {self.pool!r}") from None
        if pool == PoolType.GLOBAL and self.business_id:
            raise InvalidRequest("The global pool cannot be scoped to a business.")
        # Store plain strings so scopes compare and sort like their columns
        object.__setattr__(self, "pool", pool.value)
        object.__setattr__(self, "business_id", str(self.business_id or ""))

    @classmethod
    def global_scope(cls):
        return cls(PoolType.GLOBAL.value)

    @classmethod
    def pool_scope(cls, pool_type):
        return cls(PoolType(pool_type).value)

    @classmethod
    def business(cls, business_id, pool_type=PoolType.BUSINESS):
        if not business_id:
            raise InvalidRequest("A business scope needs a business id.")
        return cls(PoolType(pool_type).value, str(business_id))

    @classmethod
    def from_label(cls, label):
        if not label:
            raise InvalidRequest("Empty scope label.")
        pool, _sep, business_id = str(label).partition(":")
        return cls(pool, business_id)

    @classmethod
    def coerce(cls, value):
        """Accepts a Scope, a label or None (global)."""
        if value is None:
            return cls.global_scope()
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_label(value)
        raise InvalidRequest(f"Cannot build a scope from {value!r}")

    @property
    def pool_type(self):
        return PoolType(self.pool)

    @property
    def is_global(self):
        return self.pool == PoolType.GLOBAL

    @property
    def label(self):
        if self.business_id:
            return f"{self.pool}:{self.business_id}"
        return self.pool

    def as_filter(self, prefix=""):
        return {f"{prefix}pool": self.pool, f"{prefix}business_id": self.business_id}

    def __str__(self):
        return self.label


class Role(models.TextChoices):
    CUSTOMER = "customer", _("Customer")
    BUSINESS = "business", _("Business")
    ADMIN = "admin", _("Admin")


@dataclass(frozen=True)
class Actor:
    """
    Already-authenticated caller. The ledger never verifies credentials; it
    trusts the identity and business scope it is given.
    """

    user_id: str
    role: str = Role.CUSTOMER.value
    business_id: Optional[str] = None

    def __post_init__(self):
        if self.user_id in (None, ""):
            raise InvalidRequest("Actor needs a user id.")
        object.__setattr__(self, "user_id", str(self.user_id))
        try:
            object.__setattr__(self, "role", Role(self.role).value)
        except ValueError:
            raise InvalidRequest(f"Unknown role: {self.role!r}") from None
        if self.business_id is not None:
            object.__setattr__(self, "business_id", str(self.business_id))

    def as_dict(self):
        return {"user_id": self.user_id, "role": self.role, "business_id": self.business_id}
