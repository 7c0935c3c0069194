from __future__ import annotations

import uuid
from datetime import date
from typing import Optional


def _stamp(on: date) -> str:
    return on.strftime("%Y%m%d")


def new_record_id(on: date, prefix: Optional[str] = None) -> str:
    # YYYYMMDD-xxxxxxxx, optionally prefixed (REG-, ENQ-, WDR-)
    body = f"{_stamp(on)}-{uuid.uuid4().hex[:8]}"
    return f"{prefix}-{body}" if prefix else body


def new_application_id(on: date) -> str:
    return new_record_id(on)


def new_registration_id(on: date) -> str:
    return new_record_id(on, "REG")


def new_enquiry_id(on: date) -> str:
    return new_record_id(on, "ENQ")


def new_withdrawal_id(on: date) -> str:
    return new_record_id(on, "WDR")
