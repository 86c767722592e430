"""
Rastreabilidade: Manifest v1.

API pública:
    - RunManifest       → estrutura canônica do Manifest
    - create_manifest   → criação explícita
    - add_event         → registro explícito no Event Log
    - step_started / step_finished / step_failed → estado incremental de Steps
    - save_manifest / load_manifest → round-trip JSON
"""

from .manifest import (
    RunManifest,
    add_event,
    create_manifest,
    load_manifest,
    save_manifest,
    step_failed,
    step_finished,
    step_started,
)

__all__ = [
    "RunManifest",
    "create_manifest",
    "add_event",
    "step_started",
    "step_finished",
    "step_failed",
    "save_manifest",
    "load_manifest",
]
