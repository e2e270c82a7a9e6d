"""
core/__init__.py

Session plumbing shared by every PassGuard component: configuration,
logging, timers, metrics, collaborator interfaces and the session runner.

Kept import-free so `from core.timers import ...` never pulls in OpenCV.
"""
