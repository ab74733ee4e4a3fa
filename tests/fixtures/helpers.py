"""
Record builders for seeding the fake store.
"""
import uuid
from typing import Any, Dict

from reztek_service.crud.base import utcnow_iso


def tenant_record(**overrides) -> Dict[str, Any]:
    record = {
        "id": str(uuid.uuid4()),
        "name": "Thandi",
        "surname": "Mokoena",
        "email": "thandi@example.com",
        "contact_number": "0821234567",
        "room_number": "B204",
        "residence": "Observatory",
        "tenant_code": "OBS-204",
        "created_at": utcnow_iso(),
    }
    record.update(overrides)
    return record


def request_record(tenant: Dict[str, Any], **overrides) -> Dict[str, Any]:
    record = {
        "id": str(uuid.uuid4()),
        "tenant_id": tenant["id"],
        "tenant_name": f"{tenant['name']} {tenant['surname']}",
        "tenant_email": tenant["email"],
        "tenant_phone": tenant["contact_number"],
        "room_number": tenant["room_number"],
        "residence": tenant["residence"],
        "tenant_code": tenant.get("tenant_code"),
        "issue_location": "Bathroom",
        "urgency_level": "Medium",
        "description": "Leaking tap",
        "image_url": "",
        "status": "Pending",
        "has_feedback": False,
        "rating": None,
        "submitted_at": utcnow_iso(),
        "updated_at": utcnow_iso(),
    }
    record.update(overrides)
    return record


def stock_record(**overrides) -> Dict[str, Any]:
    record = {
        "id": str(uuid.uuid4()),
        "name": "Light bulbs",
        "quantity": 12,
        "category": "Electrical",
        "notes": "",
        "low_stock_threshold": 5,
        "residence": "Observatory",
        "last_restocked": utcnow_iso(),
    }
    record.update(overrides)
    return record
