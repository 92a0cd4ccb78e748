"""Human-readable record numbers (random suffix, not guaranteed unique)."""
import random
from datetime import date
from typing import Optional


def _today(today: Optional[date]) -> date:
    return today or date.today()


def generate_document_number(document_type: str, today: Optional[date] = None) -> str:
    d = _today(today)
    prefix = document_type[:3].upper()
    return f"{prefix}-{d.year}{d.month:02d}-{random.randint(0, 9999):04d}"


def generate_incident_number(today: Optional[date] = None) -> str:
    return f"INC-{_today(today).year}-{random.randint(0, 99999):05d}"


def generate_complaint_number(today: Optional[date] = None) -> str:
    return f"COMP-{_today(today).year}-{random.randint(0, 9999):04d}"


def generate_record_number(record_type: str, today: Optional[date] = None) -> str:
    prefix = record_type[:3].upper()
    return f"{prefix}-{_today(today).year}-{random.randint(0, 99999):05d}"


def generate_household_number(today: Optional[date] = None) -> str:
    return f"HH-{_today(today).year}-{random.randint(0, 9999):04d}"


def generate_request_number(today: Optional[date] = None) -> str:
    return f"REQ-{_today(today).year}-{random.randint(0, 9999):04d}"
