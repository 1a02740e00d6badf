"""
Top-level package for the work_preservation project.

The archival core lives under `work_preservation.bagit`: path analysis,
multi-digest hashing, and BagIt bag construction/validation. Record keeping,
quarantine and vault scans are layered on by callers.
"""

__all__: list[str] = []
