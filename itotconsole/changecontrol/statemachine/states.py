"""
Modification Definitions

Provides:
- Modification statuses
- Infrastructure references for IT and OT assets
- Decision history records
- The Modification entity
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ModificationStatus(Enum):
    """Lifecycle status of a modification"""
    PROPOSED = "PROPOSED"     # Drafted by the proposer
    PENDING = "PENDING"       # Awaiting review
    APPROVED = "APPROVED"     # Approved, awaiting application
    REJECTED = "REJECTED"
    APPLIED = "APPLIED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    ModificationStatus.APPLIED,
    ModificationStatus.REJECTED,
    ModificationStatus.CANCELLED,
})


class ModificationType(Enum):
    """Kind of change being proposed"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"          # Port connection
    DISCONNECT = "DISCONNECT"    # Port disconnection


class ModificationEntity(Enum):
    """Infrastructure entity targeted by a change"""
    SITE = "SITE"
    ZONE = "ZONE"
    RACK = "RACK"
    EQUIPMENT = "EQUIPMENT"
    PORT = "PORT"
    CONNECTION = "CONNECTION"


class NetworkType(Enum):
    """Network domain of an asset"""
    IT = "IT"    # Information technology
    OT = "OT"    # Operational / industrial


@dataclass(frozen=True)
class InfrastructureRef:
    """
    Reference to the infrastructure a modification targets

    Attributes:
        entity: Entity kind
        entity_id: Existing entity (None for CREATE)
        network: IT or OT domain
        site_id, zone_id, rack_id: Location hierarchy
    """
    entity: ModificationEntity
    entity_id: Optional[str] = None
    network: NetworkType = NetworkType.IT
    site_id: Optional[str] = None
    zone_id: Optional[str] = None
    rack_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity.value,
            "entity_id": self.entity_id,
            "network": self.network.value,
            "site_id": self.site_id,
            "zone_id": self.zone_id,
            "rack_id": self.rack_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InfrastructureRef":
        return cls(
            entity=ModificationEntity(data["entity"]),
            entity_id=data.get("entity_id"),
            network=NetworkType(data.get("network", NetworkType.IT.value)),
            site_id=data.get("site_id"),
            zone_id=data.get("zone_id"),
            rack_id=data.get("rack_id")
        )


@dataclass(frozen=True)
class DecisionRecord:
    """One entry of a modification's decision history"""

    actor_id: str
    action: str
    from_status: ModificationStatus
    to_status: ModificationStatus
    timestamp: datetime
    comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "timestamp": self.timestamp.isoformat(),
            "comment": self.comment
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionRecord":
        return cls(
            actor_id=data["actor_id"],
            action=data["action"],
            from_status=ModificationStatus(data["from_status"]),
            to_status=ModificationStatus(data["to_status"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            comment=data.get("comment")
        )


@dataclass(frozen=True)
class Modification:
    """
    A proposed infrastructure change

    Instances are immutable; transitions produce a new instance with
    the history tuple extended by one record.
    """

    id: str
    target: InfrastructureRef
    change_type: ModificationType
    proposer_id: str
    payload: Dict[str, Any] = field(default_factory=dict, hash=False)
    justification: str = ""
    status: ModificationStatus = ModificationStatus.PROPOSED
    history: Tuple[DecisionRecord, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def last_decision(self) -> Optional[DecisionRecord]:
        return self.history[-1] if self.history else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target": self.target.to_dict(),
            "change_type": self.change_type.value,
            "proposer_id": self.proposer_id,
            "payload": self.payload,
            "justification": self.justification,
            "status": self.status.value,
            "history": [r.to_dict() for r in self.history],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Modification":
        return cls(
            id=data["id"],
            target=InfrastructureRef.from_dict(data["target"]),
            change_type=ModificationType(data["change_type"]),
            proposer_id=data["proposer_id"],
            payload=dict(data.get("payload") or {}),
            justification=data.get("justification", ""),
            status=ModificationStatus(data["status"]),
            history=tuple(DecisionRecord.from_dict(r) for r in data.get("history", [])),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            version=data.get("version", 0)
        )
