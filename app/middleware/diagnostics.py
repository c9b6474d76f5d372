"""
Startup diagnostics: runs once when the Flask app starts.

Checks critical dependencies, reports status-vocabulary conflicts, and logs
a summary banner.
"""

import logging
import sys

from flask import Flask

from app.models import db
from app.models.status import VOCABULARY_VERSION, workflow_vocabulary_conflicts

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return  # skip during tests for speed

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Database connectivity ────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except Exception as exc:
            db_status = "FAILED"
            issues.append(f"Database unreachable: {exc}")

        # ── Table count ──────────────────────────────────────────────
        try:
            from sqlalchemy import inspect as sa_inspect
            table_count = len(sa_inspect(db.engine).get_table_names())
            if table_count == 0:
                issues.append("No tables found; run 'flask db upgrade'")
        except Exception:
            table_count = "?"

        # ── Redis (limiter storage) ──────────────────────────────────
        redis_url = app.config.get("REDIS_URL", "")
        redis_status = "not configured"
        if redis_url and "redis" in redis_url:
            try:
                import redis as redis_lib
                r = redis_lib.from_url(redis_url, socket_timeout=2)
                r.ping()
                redis_status = "ok"
            except ImportError:
                redis_status = "package not installed"
            except Exception:
                redis_status = "unreachable"
                issues.append("Redis unreachable; rate limiter storage will fail")

        # ── Status vocabulary ────────────────────────────────────────
        conflicts = workflow_vocabulary_conflicts()
        for conflict in conflicts:
            issues.append(
                f"Workflow '{conflict['workflow']}' uses statuses outside the canonical "
                f"vocabulary: {', '.join(conflict['statuses'])}"
            )

        banner = f"""
╔══════════════════════════════════════════════════════════════╗
║  SLF/PBG Certification Workflow: Startup Diagnostics         ║
╠══════════════════════════════════════════════════════════════╣
║  Python      : {py:<46s}║
║  Environment : {app.config.get('ENV', 'development'):<46s}║
║  Debug       : {str(app.debug):<46s}║
║  Database    : {f'{db_type} ({db_status})':<46s}║
║  Tables      : {str(table_count):<46s}║
║  Redis       : {redis_status:<46s}║
║  Vocabulary  : {f'v{VOCABULARY_VERSION}, {len(conflicts)} workflow conflict(s)':<46s}║
╚══════════════════════════════════════════════════════════════╝"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  ⚠ %s", issue)
        else:
            logger.info("✅ All startup checks passed")
