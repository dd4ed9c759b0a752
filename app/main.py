import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from dotenv import load_dotenv

from .lib import database
from .lib.access import resolve_access
from .lib.errors import ForbiddenError, InvalidStatusError, PortalError, SubmissionsClosedError
from .lib.events import is_registration_open
from .lib.grouping import build_grouped_tree, build_sections
from .lib.sample_problems import SAMPLE_PROBLEMS, seed_sample_data
from .lib.taxonomy import CATEGORIES, ENGINEERING_DEPTS, PENDING_REVIEW, THEMES, merge_departments


load_dotenv()


IS_PRODUCTION = os.getenv("ENVIRONMENT") == "production"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


logging.basicConfig(
    level=logging.INFO if IS_PRODUCTION else logging.DEBUG,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


ERROR_STATUS = {
    InvalidStatusError: 422,
    SubmissionsClosedError: 409,
    ForbiddenError: 403,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await database.init_db()
    if os.getenv("SEED_SAMPLE_DATA") == "1":
        seeded = await seed_sample_data()
        logger.info("Seeded %d sample problem statements", seeded)
    logger.info("Database initialized. Environment: %s", "production" if IS_PRODUCTION else "development")
    yield


app = FastAPI(title="Hackathon Portal API", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def current_access(x_user_id: Optional[str] = Header(default=None)) -> dict:
    if not x_user_id:
        return {"user_id": None, "is_admin": False, "is_super_admin": False}
    roles = await database.get_user_roles(x_user_id)
    return {"user_id": x_user_id, **resolve_access(roles)}


async def require_admin(access: dict = Depends(current_access)) -> dict:
    if not access["is_admin"]:
        raise ForbiddenError("Admin role required")
    return access


class ProblemInput(BaseModel):
    problem_statement_id: str
    title: str
    description: str
    detailed_description: Optional[str] = None
    category: Optional[str] = None
    theme: Optional[str] = None
    department: Optional[str] = None


class ProblemUpdate(BaseModel):
    problem_statement_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    category: Optional[str] = None
    theme: Optional[str] = None
    department: Optional[str] = None


class StatusInput(BaseModel):
    status: str


class DepartmentInput(BaseModel):
    name: str


class RegistrationInput(BaseModel):
    team_name: str
    department: str


class EventInput(BaseModel):
    title: str
    description: Optional[str] = None
    event_date: datetime
    location: Optional[str] = None
    event_type: Optional[str] = None
    mode: Optional[str] = None
    resource_person: Optional[str] = None
    problem_statement_deadline: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = None
    organizer_name: Optional[str] = None
    organizer_contact: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True


class DepartmentMessageInput(BaseModel):
    message: str
    sender_name: Optional[str] = None


class ProblemMessageInput(BaseModel):
    content: str


@app.get("/")
def root():
    return {"status": "ok", "message": "Hackathon Portal API"}


@app.get("/taxonomy")
def get_taxonomy():
    return {"themes": THEMES, "categories": CATEGORIES, "engineering_departments": ENGINEERING_DEPTS}


@app.get("/sample-problems")
def get_sample_problems():
    return {"problems": SAMPLE_PROBLEMS}


@app.get("/me/access")
async def get_my_access(access: dict = Depends(current_access)):
    return access


# ============ Departments ============

@app.get("/departments/grouped")
async def get_grouped_departments():
    problems = await database.list_problems(status=PENDING_REVIEW)
    roster = await database.get_registration_departments()

    view = build_grouped_tree(problems, roster)
    return {
        "sections": build_sections(view, view.departments),
        "departments": view.departments,
        "primary_themes": view.primary_themes,
    }


@app.get("/departments")
async def get_departments():
    from_problems = await database.get_problem_departments()
    from_regs = await database.get_registration_departments()
    return {"departments": merge_departments(from_problems, from_regs, ENGINEERING_DEPTS)}


@app.get("/departments/catalog")
async def get_department_catalog():
    return {"departments": await database.list_departments()}


@app.post("/departments")
async def add_department(body: DepartmentInput, access: dict = Depends(require_admin)):
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Department name required")
    department = await database.create_department(name)
    if not department:
        raise HTTPException(status_code=409, detail=f"Department {name} already exists")
    return {"department": department}


@app.get("/departments/{department}/problems")
async def get_department_problems(department: str):
    problems = await database.list_problems(department=department)
    return {"department": department, "problems": problems}


@app.post("/registrations")
async def add_registration(body: RegistrationInput):
    if not body.department.strip():
        raise HTTPException(status_code=400, detail="department required")
    registration = await database.create_team_registration(body.team_name, body.department.strip())
    return {"registration": registration}


# ============ Problem statements ============

@app.post("/problems")
async def create_problem(body: ProblemInput, access: dict = Depends(require_admin)):
    if not await database.has_open_problem_deadline():
        raise SubmissionsClosedError("Problem statements are closed, no active deadline available.")
    problem = await database.create_problem(body.model_dump())
    return {"problem": problem}


@app.put("/problems/{problem_id}")
async def update_problem(problem_id: str, body: ProblemUpdate, access: dict = Depends(require_admin)):
    problem = await database.update_problem(problem_id, body.model_dump(exclude_unset=True))
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return {"problem": problem}


@app.post("/problems/{problem_id}/status")
async def change_problem_status(problem_id: str, body: StatusInput, access: dict = Depends(require_admin)):
    problem = await database.set_problem_status(problem_id, body.status)
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return {"problem": problem}


@app.delete("/problems/{problem_id}")
async def remove_problem(problem_id: str, access: dict = Depends(require_admin)):
    if not await database.delete_problem(problem_id):
        raise HTTPException(status_code=404, detail="Problem not found")
    return {"success": True}


@app.get("/problems/{problem_id}/messages")
async def get_problem_messages(problem_id: str):
    return {"messages": await database.list_problem_messages(problem_id)}


@app.post("/problems/{problem_id}/messages")
async def post_problem_message(problem_id: str, body: ProblemMessageInput,
                               access: dict = Depends(current_access)):
    if not access["user_id"]:
        raise HTTPException(status_code=401, detail="Sign in to chat")
    if not body.content.strip():
        raise HTTPException(status_code=400, detail="Message is empty")
    if not await database.get_problem(problem_id):
        raise HTTPException(status_code=404, detail="Problem not found")
    message = await database.create_problem_message(problem_id, access["user_id"], body.content)
    return {"message": message}


# ============ Events ============

@app.get("/events")
async def get_events():
    return {"events": await database.list_active_events()}


@app.post("/events")
async def add_event(body: EventInput, access: dict = Depends(require_admin)):
    event = await database.create_event(body.model_dump())
    return {"event": event}


@app.get("/events/{event_id}")
async def get_event(event_id: str, access: dict = Depends(current_access)):
    event = await database.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    already_registered = False
    if access["user_id"]:
        already_registered = await database.is_user_registered(event_id, access["user_id"])
    return {
        "event": event,
        "registration_open": is_registration_open(event),
        "already_registered": already_registered,
    }


@app.post("/events/{event_id}/register")
async def register_event(event_id: str, access: dict = Depends(current_access)):
    if not access["user_id"]:
        raise HTTPException(status_code=401, detail="Sign in to register")
    event = await database.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if not is_registration_open(event):
        raise HTTPException(status_code=409, detail="Registration is closed")
    created = await database.register_for_event(event_id, access["user_id"])
    return {"success": True, "already_registered": not created}


# ============ Department messages ============

@app.get("/messages/departments")
async def get_message_departments():
    from_problems = await database.get_problem_departments()
    from_regs = await database.get_registration_departments()
    return {"departments": merge_departments(from_problems, from_regs)}


@app.get("/departments/{department}/messages")
async def get_department_messages(department: str):
    return {"messages": await database.list_department_messages(department)}


@app.post("/departments/{department}/messages")
async def post_department_message(department: str, body: DepartmentMessageInput,
                                  access: dict = Depends(current_access)):
    text = body.message.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Message is empty")
    message = await database.create_department_message(
        department,
        text,
        sender_id=access["user_id"],
        sender_name=body.sender_name or "Admin",
    )
    return {"message": message}
