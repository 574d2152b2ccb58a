"""
Hashing Module - SHA256 Report Fingerprints

Canonical JSON serialization and SHA256 hashing used to seal gains
reports: identical transactions and settings yield identical input and
output hashes, so a recomputation can be verified against an earlier run.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import hashlib
import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict


def canonical_json_dumps(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Ensures deterministic serialization for hashing:
    - Keys sorted alphabetically
    - No whitespace
    - Decimals as normalized strings (no float rounding)
    - Dates as ISO strings, enums as their values

    Example:
        >>> canonical_json_dumps({"amount": Decimal("123.450"), "date": date(2024, 1, 15)})
        '{"amount":"123.45","date":"2024-01-15"}'
    """
    def default_handler(o):
        if isinstance(o, Decimal):
            return str(o.normalize()) if o else "0"
        elif isinstance(o, Enum):
            return o.value
        elif isinstance(o, (date, datetime)):
            return o.isoformat()
        elif is_dataclass(o):
            return asdict(o)
        elif hasattr(o, 'model_dump'):
            return o.model_dump()
        else:
            raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

    return json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        default=default_handler,
        ensure_ascii=True
    )


def calculate_sha256(data: Any) -> str:
    """
    Calculate SHA256 hash of data.

    Returns:
        SHA256 hex digest prefixed with 'sha256:'
    """
    json_str = canonical_json_dumps(data)
    hash_obj = hashlib.sha256(json_str.encode('utf-8'))
    return f"sha256:{hash_obj.hexdigest()}"


def verify_hash(data: Any, expected_hash: str) -> bool:
    """True if `data` hashes to `expected_hash` ('sha256:' prefix included)."""
    return calculate_sha256(data) == expected_hash


def create_audit_entry(event_id: str, inputs: Dict[str, Any], outputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create an audit trail entry with hash seal.

    `inputs_hash` and `outputs_hash` depend on content only and are stable
    across runs; `calculation_hash` additionally seals the event id and
    timestamp of this particular entry.

    Returns:
        Audit entry dict with event_id, timestamp, inputs_hash,
        outputs_hash, calculation_hash, inputs and outputs
    """
    timestamp = datetime.now(timezone.utc)

    inputs_hash = calculate_sha256(inputs)
    outputs_hash = calculate_sha256(outputs)

    calculation_hash = calculate_sha256({
        "event_id": event_id,
        "timestamp": timestamp,
        "inputs_hash": inputs_hash,
        "outputs_hash": outputs_hash,
    })

    return {
        "event_id": event_id,
        "timestamp": timestamp.isoformat(),
        "inputs_hash": inputs_hash,
        "outputs_hash": outputs_hash,
        "calculation_hash": calculation_hash,
        "inputs": inputs,
        "outputs": outputs
    }
