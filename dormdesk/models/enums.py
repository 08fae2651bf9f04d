"""Enum definitions shared by backend schemas and the batch journal."""

from enum import Enum


class RoomStatus(str, Enum):
    """Occupancy state of a room as reported by the backend."""

    VACANT = "VACANT"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    OVERDUE = "OVERDUE"


class TenantStatus(str, Enum):
    """Tenant lifecycle state."""

    ACTIVE = "ACTIVE"
    MOVED_OUT = "MOVED_OUT"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle state."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    """Payment slip verification state."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class MaintenanceStatus(str, Enum):
    """Maintenance ticket state."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MaintenanceKind(str, Enum):
    """Tag of the structured maintenance details record."""

    REPAIR = "repair"
    MOVE_OUT = "move_out"


class StaffRole(str, Enum):
    """Dashboard user roles."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"


class Utility(str, Enum):
    """Metered utilities."""

    WATER = "water"
    ELECTRIC = "electric"


class BatchStatus(str, Enum):
    """Overall state of a meter batch run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchItemState(str, Enum):
    """Per-room progress through a meter batch."""

    PENDING = "pending"
    READING_SUBMITTED = "reading_submitted"
    INVOICE_ATTEMPTED = "invoice_attempted"
    DONE = "done"
    FAILED = "failed"  # Meter reading write failed; halts the batch


class InvoiceOutcome(str, Enum):
    """What happened to the invoice step of a batch item."""

    SKIPPED = "skipped"  # No active contract
    GENERATED = "generated"
    FAILED = "failed"
