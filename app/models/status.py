"""
SLF/PBG Certification Workflow
Status vocabularies and transition tables.

One table per status domain. Blueprints and services read from here; nothing
else defines labels, colors, progress weights or legal transitions.

Domains:
    - ProjectStatus: 12-value project lifecycle (label, color, progress)
    - DocumentStatus: document / inspection-report review lifecycle
    - TEAM_LEADER_TRANSITIONS: adjacency map used by team leaders
    - PIPELINE_TRANSITIONS: adjacency map over the canonical 12 values
    - SCHEDULE_TRANSITIONS / PAYMENT_TRANSITIONS: schedule and payment lifecycles

The team-leader map references four statuses the canonical enum does not
contain (see ALTERNATE_WORKFLOW_STATUSES). Both maps are kept as separate,
named workflows; callers pick one explicitly.
"""

import enum

# Bumped whenever any table below changes shape or content.
VOCABULARY_VERSION = 1

DEFAULT_STATUS_COLOR = "bg-gray-100 text-gray-800 dark:bg-gray-900/20 dark:text-gray-400"
DEFAULT_DOCUMENT_COLOR = "bg-muted text-muted-foreground"


# ── Project lifecycle ────────────────────────────────────────────────────────

class ProjectStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PROJECT_LEAD_REVIEW = "project_lead_review"
    INSPECTION_SCHEDULED = "inspection_scheduled"
    INSPECTION_IN_PROGRESS = "inspection_in_progress"
    REPORT_DRAFT = "report_draft"
    HEAD_CONSULTANT_REVIEW = "head_consultant_review"
    CLIENT_REVIEW = "client_review"
    GOVERNMENT_SUBMITTED = "government_submitted"
    SLF_ISSUED = "slf_issued"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# status → (label, color token, progress %)
PROJECT_STATUS_META = {
    ProjectStatus.DRAFT: ("Draft", "bg-gray-100 text-gray-800 dark:bg-gray-900/20 dark:text-gray-400", 10),
    ProjectStatus.SUBMITTED: ("Submitted", "bg-blue-100 text-blue-800 dark:bg-blue-900/20 dark:text-blue-400", 20),
    ProjectStatus.PROJECT_LEAD_REVIEW: (
        "Project Lead Review", "bg-yellow-100 text-yellow-800 dark:bg-yellow-900/20 dark:text-yellow-400", 30,
    ),
    ProjectStatus.INSPECTION_SCHEDULED: (
        "Inspection Scheduled", "bg-orange-100 text-orange-800 dark:bg-orange-900/20 dark:text-orange-400", 40,
    ),
    ProjectStatus.INSPECTION_IN_PROGRESS: (
        "Inspection In Progress", "bg-orange-100 text-orange-800 dark:bg-orange-900/20 dark:text-orange-400", 50,
    ),
    ProjectStatus.REPORT_DRAFT: (
        "Report Draft", "bg-purple-100 text-purple-800 dark:bg-purple-900/20 dark:text-purple-400", 60,
    ),
    ProjectStatus.HEAD_CONSULTANT_REVIEW: (
        "Head Consultant Review", "bg-indigo-100 text-indigo-800 dark:bg-indigo-900/20 dark:text-indigo-400", 70,
    ),
    ProjectStatus.CLIENT_REVIEW: (
        "Client Review", "bg-cyan-100 text-cyan-800 dark:bg-cyan-900/20 dark:text-cyan-400", 80,
    ),
    ProjectStatus.GOVERNMENT_SUBMITTED: (
        "Government Submitted", "bg-green-100 text-green-800 dark:bg-green-900/20 dark:text-green-400", 90,
    ),
    ProjectStatus.SLF_ISSUED: (
        "SLF Issued", "bg-emerald-100 text-emerald-800 dark:bg-emerald-900/20 dark:text-emerald-400", 95,
    ),
    ProjectStatus.COMPLETED: ("Completed", "bg-green-100 text-green-800 dark:bg-green-900/20 dark:text-green-400", 100),
    ProjectStatus.CANCELLED: ("Cancelled", "bg-red-100 text-red-800 dark:bg-red-900/20 dark:text-red-400", 0),
}

PROJECT_STATUSES = frozenset(s.value for s in ProjectStatus)

# Statuses that accept no further work (document linking, scheduling).
FINAL_STATUSES = frozenset({"completed", "cancelled", "rejected", "slf_issued", "pbg_issued"})

# Timeline phase per status; 0 = outside the timeline.
STATUS_PHASE_MAP = {
    "draft": 1,
    "submitted": 1,
    "project_lead_review": 1,
    "document_collection": 1,
    "document_verification": 1,
    "inspection_scheduled": 2,
    "inspection_in_progress": 2,
    "inspection_completed": 2,
    "report_draft": 3,
    "report_review": 3,
    "report_submitted": 3,
    "head_consultant_review": 3,
    "drafter_revision": 3,
    "revisions_required": 3,
    "admin_lead_review": 4,
    "client_review": 4,
    "client_approved": 4,
    "payment_pending": 4,
    "payment_verified": 4,
    "government_submitted": 5,
    "government_review": 5,
    "slf_issued": 5,
    "pbg_issued": 5,
    "completed": 5,
    "cancelled": 0,
    "rejected": 0,
    "on_hold": 0,
}


def _project_meta(status):
    try:
        return PROJECT_STATUS_META[ProjectStatus(status)]
    except ValueError:
        return None


def get_status_label(status) -> str:
    """Human label for a project status; unknown values come back unchanged."""
    meta = _project_meta(status)
    if meta:
        return meta[0]
    return status if status is not None else ""


def get_status_color(status) -> str:
    meta = _project_meta(status)
    return meta[1] if meta else DEFAULT_STATUS_COLOR


def get_progress_value(status) -> int:
    meta = _project_meta(status)
    return meta[2] if meta else 0


def get_project_phase(status) -> int:
    """Timeline phase (1-5) for a status; 0 for cancelled/rejected/on hold."""
    if not status:
        return 1
    return STATUS_PHASE_MAP.get(status, 1)


def is_final_status(status) -> bool:
    return status in FINAL_STATUSES


def describe_project_status(status) -> dict:
    return {
        "status": status,
        "label": get_status_label(status),
        "color": get_status_color(status),
        "progress": get_progress_value(status),
        "phase": get_project_phase(status),
        "is_final": is_final_status(status),
    }


# ── Transition tables ────────────────────────────────────────────────────────

TEAM_LEADER_TRANSITIONS = {
    "project_lead_review": ["inspection_scheduled", "cancelled"],
    "inspection_scheduled": ["inspection_in_progress", "cancelled"],
    "inspection_in_progress": ["inspection_completed", "cancelled"],
    "inspection_completed": ["report_draft", "cancelled"],
    "report_draft": ["report_submitted", "cancelled"],
    "report_submitted": ["admin_lead_review", "cancelled"],
    "admin_lead_review": ["client_review", "revisions_required", "cancelled"],
    "revisions_required": ["report_draft", "cancelled"],
    "client_review": ["government_submitted", "revisions_required", "cancelled"],
    "government_submitted": ["slf_issued", "cancelled"],
    "slf_issued": ["completed", "cancelled"],
}

# Canonical pipeline: ordering implied by the progress weights above.
PIPELINE_TRANSITIONS = {
    "draft": ["submitted", "cancelled"],
    "submitted": ["project_lead_review", "cancelled"],
    "project_lead_review": ["inspection_scheduled", "cancelled"],
    "inspection_scheduled": ["inspection_in_progress", "cancelled"],
    "inspection_in_progress": ["report_draft", "cancelled"],
    "report_draft": ["head_consultant_review", "cancelled"],
    "head_consultant_review": ["client_review", "cancelled"],
    "client_review": ["government_submitted", "cancelled"],
    "government_submitted": ["slf_issued", "cancelled"],
    "slf_issued": ["completed", "cancelled"],
    "completed": [],
    "cancelled": [],
}

WORKFLOWS = {
    "team_leader": TEAM_LEADER_TRANSITIONS,
    "pipeline": PIPELINE_TRANSITIONS,
}
DEFAULT_WORKFLOW = "pipeline"


def _workflow_statuses(table: dict) -> set:
    statuses = set(table)
    for targets in table.values():
        statuses.update(targets)
    return statuses


# Referenced by the team-leader map but absent from ProjectStatus.
ALTERNATE_WORKFLOW_STATUSES = frozenset(
    _workflow_statuses(TEAM_LEADER_TRANSITIONS) - PROJECT_STATUSES
)

# Every status a project row may hold.
KNOWN_PROJECT_STATUSES = PROJECT_STATUSES | ALTERNATE_WORKFLOW_STATUSES


def next_allowed_statuses(status, workflow: str = "team_leader") -> frozenset:
    """Statuses reachable from *status* in *workflow*; empty for terminal/unlisted."""
    table = WORKFLOWS.get(workflow)
    if table is None:
        raise ValueError(f"Unknown workflow: {workflow}")
    return frozenset(table.get(status, []))


def validate_project_transition(old_status, new_status, workflow: str = DEFAULT_WORKFLOW) -> bool:
    """Return True if the project status transition is legal in *workflow*."""
    return new_status in next_allowed_statuses(old_status, workflow)


def workflow_vocabulary_conflicts() -> list[dict]:
    """Statuses used by a workflow table that the canonical enum lacks."""
    conflicts = []
    for name, table in WORKFLOWS.items():
        missing = sorted(_workflow_statuses(table) - PROJECT_STATUSES)
        if missing:
            conflicts.append({"workflow": name, "statuses": missing})
    return conflicts


# ── Document / report lifecycle ──────────────────────────────────────────────

class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    VERIFIED_BY_ADMIN_TEAM = "verified_by_admin_team"
    APPROVED_BY_PL = "approved_by_pl"
    REJECTED_BY_PL = "rejected_by_pl"
    APPROVED_BY_HC = "approved_by_hc"
    REVISION_REQUESTED_BY_HC = "revision_requested_by_hc"
    REJECTED = "rejected"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"


DOCUMENT_STATUS_META = {
    DocumentStatus.DRAFT: ("Draft", "bg-gray-100 text-gray-600 dark:bg-gray-500/10 dark:text-gray-400"),
    DocumentStatus.SUBMITTED: ("Submitted", "bg-blue-100 text-blue-600 dark:bg-blue-500/10 dark:text-blue-400"),
    DocumentStatus.VERIFIED_BY_ADMIN_TEAM: (
        "Awaiting Project Lead Review", "bg-orange-100 text-orange-600 dark:bg-orange-500/10 dark:text-orange-400",
    ),
    DocumentStatus.APPROVED_BY_PL: (
        "Approved by Project Lead", "bg-green-100 text-green-600 dark:bg-green-500/10 dark:text-green-400",
    ),
    DocumentStatus.REJECTED_BY_PL: (
        "Rejected by Project Lead", "bg-red-100 text-red-600 dark:bg-red-500/10 dark:text-red-400",
    ),
    DocumentStatus.APPROVED_BY_HC: (
        "Approved by Head Consultant", "bg-emerald-100 text-emerald-600 dark:bg-emerald-500/10 dark:text-emerald-400",
    ),
    DocumentStatus.REVISION_REQUESTED_BY_HC: (
        "Revision Requested by Head Consultant",
        "bg-amber-100 text-amber-600 dark:bg-amber-500/10 dark:text-amber-400",
    ),
    DocumentStatus.REJECTED: ("Rejected", "bg-red-100 text-red-600 dark:bg-red-500/10 dark:text-red-400"),
    DocumentStatus.APPROVED: ("Approved", "bg-green-100 text-green-600 dark:bg-green-500/10 dark:text-green-400"),
    DocumentStatus.CANCELLED: ("Cancelled", "bg-red-100 text-red-600 dark:bg-red-500/10 dark:text-red-400"),
    DocumentStatus.COMPLETED: ("Completed", "bg-green-100 text-green-600 dark:bg-green-500/10 dark:text-green-400"),
    DocumentStatus.SCHEDULED: ("Scheduled", "bg-blue-100 text-blue-600 dark:bg-blue-500/10 dark:text-blue-400"),
    DocumentStatus.IN_PROGRESS: (
        "In Progress", "bg-yellow-100 text-yellow-600 dark:bg-yellow-500/10 dark:text-yellow-400",
    ),
}

DOCUMENT_STATUSES = frozenset(s.value for s in DocumentStatus)


def _document_meta(status):
    try:
        return DOCUMENT_STATUS_META[DocumentStatus(status)]
    except ValueError:
        return None


def get_document_status_label(status) -> str:
    meta = _document_meta(status)
    if meta:
        return meta[0]
    return status.replace("_", " ") if status else ""


def get_document_status_color(status) -> str:
    meta = _document_meta(status)
    return meta[1] if meta else DEFAULT_DOCUMENT_COLOR


# Action → allowed source statuses and target status.
DOCUMENT_TRANSITIONS = {
    "submit": {"from": ["draft"], "to": "submitted"},
    "verify": {"from": ["submitted"], "to": "verified_by_admin_team"},
    "approve": {"from": ["submitted", "verified_by_admin_team"], "to": "approved"},
    "approve_pl": {"from": ["verified_by_admin_team"], "to": "approved_by_pl"},
    "reject_pl": {"from": ["verified_by_admin_team"], "to": "rejected_by_pl"},
    "approve_hc": {"from": ["approved_by_pl"], "to": "approved_by_hc"},
    "request_revision_hc": {"from": ["approved_by_pl"], "to": "revision_requested_by_hc"},
    "reject": {"from": ["submitted", "verified_by_admin_team"], "to": "rejected"},
    "revise": {"from": ["rejected_by_pl", "revision_requested_by_hc"], "to": "draft"},
    "cancel": {"from": ["draft", "submitted"], "to": "cancelled"},
}

# Actions that must carry reviewer notes.
DOCUMENT_ACTIONS_REQUIRING_NOTES = frozenset({"reject_pl", "request_revision_hc", "reject"})


# ── Inspection lifecycle ─────────────────────────────────────────────────────

INSPECTION_STATUSES = frozenset({"scheduled", "in_progress", "completed", "cancelled", "rejected"})

INSPECTION_TRANSITIONS = {
    "scheduled": ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed": ["rejected"],
    "cancelled": [],
    "rejected": ["in_progress"],
}


def validate_inspection_transition(old_status, new_status) -> bool:
    """Return True if Inspection status transition is valid."""
    return new_status in INSPECTION_TRANSITIONS.get(old_status, [])


# ── Schedules ────────────────────────────────────────────────────────────────

SCHEDULE_TYPES = frozenset({"inspection", "meeting", "deadline", "rescheduled"})

SCHEDULE_STATUSES = frozenset({"scheduled", "in_progress", "completed", "cancelled"})

SCHEDULE_TRANSITIONS = {
    "scheduled": ["in_progress", "completed", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed": [],
    "cancelled": ["scheduled"],
}


def validate_schedule_transition(old_status, new_status) -> bool:
    return new_status in SCHEDULE_TRANSITIONS.get(old_status, [])


# ── Payment verification ─────────────────────────────────────────────────────

PAYMENT_STATUSES = frozenset({"pending", "verified", "rejected"})

# Decisions are final; a rejected payment is replaced by a new upload.
PAYMENT_TRANSITIONS = {
    "pending": ["verified", "rejected"],
    "verified": [],
    "rejected": [],
}


def validate_payment_transition(old_status, new_status) -> bool:
    return new_status in PAYMENT_TRANSITIONS.get(old_status, [])


def in_check(column: str, values) -> str:
    """SQL ``column IN (...)`` body for a CheckConstraint over a vocabulary."""
    quoted = ",".join(f"'{v}'" for v in sorted(values))
    return f"{column} IN ({quoted})"
