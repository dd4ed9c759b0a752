from . import database


SAMPLE_PROBLEMS = [
    {
        "problem_statement_id": "25001",
        "title": "Smart attendance using face recognition",
        "description": "Automate classroom attendance from a single camera feed and publish daily reports to faculty.",
        "category": "Software",
        "theme": "Academic",
        "department": "CSE",
    },
    {
        "problem_statement_id": "25002",
        "title": "Low-cost soil moisture network",
        "description": "Design sensor nodes that report soil moisture across a campus garden over a mesh network.",
        "category": "Hardware/Software",
        "theme": "Community Innovation",
        "department": "ECE",
    },
    {
        "problem_statement_id": "25003",
        "title": "Canteen queue predictor",
        "description": "Predict canteen waiting times from order history so students can plan their breaks.",
        "category": "Software",
        "theme": "Non-Academic",
        "department": "CSE",
    },
    {
        "problem_statement_id": "25004",
        "title": "Regenerative braking demo rig",
        "description": "Build a bench rig that measures energy recovered by regenerative braking on a small motor.",
        "category": "Hardware",
        "theme": "Academic",
        "department": "EEE",
    },
]

SAMPLE_REGISTRATIONS = [
    {"team_name": "Byte Builders", "department": "CSE"},
    {"team_name": "Circuit Breakers", "department": "ECE"},
    {"team_name": "Gear Heads", "department": "ME"},
]


async def seed_sample_data() -> int:
    """Load the sample problems and registrations into an empty database."""
    if await database.list_problems():
        return 0
    for problem in SAMPLE_PROBLEMS:
        await database.create_problem(problem)
    for registration in SAMPLE_REGISTRATIONS:
        await database.create_team_registration(registration["team_name"], registration["department"])
    return len(SAMPLE_PROBLEMS)
