from __future__ import annotations

import enum


class ItemStatus(str, enum.Enum):
    pending = "pending"
    preparing = "preparing"
    ready = "ready"
    delivered = "delivered"
    received = "received"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    completed = "completed"


class TargetType(str, enum.Enum):
    table = "table"
    room = "room"


class OrderSource(str, enum.Enum):
    public = "public"
    internal = "internal"


class UserRole(str, enum.Enum):
    platform_admin = "platform_admin"
    company_admin = "company_admin"
    employee = "employee"
    seller = "seller"
    user = "user"


STAFF_ROLES = {UserRole.employee, UserRole.company_admin}
