# tests/fixtures/__init__.py
"""Shared test doubles for autobuild tests.

Available helpers:
- host: HostSimulator, running each start/resume as a fresh "process"
- services: in-process fakes for every collaborator protocol
- steps: scripted step actions, kill simulation and step plugins
"""
