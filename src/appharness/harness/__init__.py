"""Child process supervision, admission control, and the external collaborators."""

from .admission import AdmissionGate, AdmissionPermit, admission_gate
from .discovery import find_interpreter, find_server
from .manifests import render_app_manifest, render_queue_manifest, write_manifests
from .supervisor import ProcessSupervisor, build_command

__all__ = [
    "AdmissionGate",
    "AdmissionPermit",
    "ProcessSupervisor",
    "admission_gate",
    "build_command",
    "find_interpreter",
    "find_server",
    "render_app_manifest",
    "render_queue_manifest",
    "write_manifests",
]
