THEMES = ["Academic", "Non-Academic", "Community Innovation"]

CATEGORIES = ["Software", "Hardware", "Hardware/Software"]

# Always offered in the department admin view, even before anyone registers
ENGINEERING_DEPTS = [
    "CSE",
    "AIML",
    "DS",
    "CS",
    "ECE",
    "EEE",
    "ME",
    "CE",
    "IT",
]

PENDING_REVIEW = "pending_review"
APPROVED = "approved"
REVISION_NEEDED = "revision_needed"
REJECTED = "rejected"

PROBLEM_STATUSES = [PENDING_REVIEW, APPROVED, REVISION_NEEDED, REJECTED]

ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"


def is_valid_status(status: str) -> bool:
    return status in PROBLEM_STATUSES


def merge_departments(*sources) -> list[str]:
    """Union of department names from several row lists, trimmed, blanks dropped, sorted."""
    names = set()
    for source in sources:
        for name in source or ():
            if name is None:
                continue
            name = str(name).strip()
            if name:
                names.add(name)
    return sorted(names)
