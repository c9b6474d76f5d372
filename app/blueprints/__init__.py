"""
SLF/PBG Certification Workflow
Blueprint registry and shared request helpers.
"""

from flask import request


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit : max items (default 200, capped at max_limit)
        offset: starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def register_blueprints(app):
    from app.blueprints.client_bp import client_bp
    from app.blueprints.document_bp import document_bp
    from app.blueprints.health_bp import health_bp
    from app.blueprints.inspection_bp import inspection_bp
    from app.blueprints.notification_bp import notification_bp
    from app.blueprints.payment_bp import payment_bp
    from app.blueprints.project_bp import project_bp
    from app.blueprints.reference_bp import reference_bp
    from app.blueprints.schedule_bp import schedule_bp

    for bp in (reference_bp, project_bp, client_bp, document_bp,
               inspection_bp, schedule_bp, payment_bp, notification_bp, health_bp):
        app.register_blueprint(bp)
