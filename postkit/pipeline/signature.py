"""Rules signature utilities for rebuild detection."""

import hashlib
import json

from postkit.config import AppConfig
from postkit.pipeline.directives import DirectiveExpander

# Bump when expansion or identifier rules change in code
RULES_VERSION = 1


def compute_signature(config: AppConfig) -> str:
    """Compute a stable signature of everything that shapes rendered output."""
    payload = {
        "rules_version": RULES_VERSION,
        "block_directives": DirectiveExpander.block_directives,
        "front_matter": {
            "delimiter": config.front_matter.delimiter,
            "required_fields": list(config.front_matter.required_fields),
        },
        "permalink": {
            "default_category": config.permalink.default_category,
            "slug_max_length": config.permalink.slug_max_length,
        },
        "categories": {"order": config.categories.order},
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def should_process(existing_checksum: str | None, checksum: str) -> bool:
    """A source needs rendering when it is new or its content changed."""
    return existing_checksum != checksum
