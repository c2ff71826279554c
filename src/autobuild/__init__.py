"""
Autobuild: crash-resumable build-and-publish pipelines.

Runs an ordered list of registered steps, persisting an execution cursor
between them so that a host process killed mid-pipeline resumes exactly
where it left off.
"""

__version__ = "0.1.0"
