"""
pgman - PostgreSQL backup manager.

Browse database backup snapshots held in an S3-compatible object store,
download one with live progress, and restore it with pg_restore.
"""

__version__ = "0.3.0"
__author__ = "pgman maintainers"
