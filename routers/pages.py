from typing import Optional, get_args

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy import func
from sqlmodel import select

from config import BASE_DIR
from db import SessionDep
from models import AdoptableAnimal, ReportedAnimal, User
from schemas import AdoptionStatus, ReportStatus, Urgency
from .adoptable_animals import load_available_animals, load_ngo_animals
from .auth import OptionalUserDep
from .reported_animals import load_reported_animals
from .veterinarians import find_nearby_veterinarians

router = APIRouter(tags=["pages"], include_in_schema=False)
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

REPORT_STATUSES = list(get_args(ReportStatus))
ADOPTION_STATUSES = list(get_args(AdoptionStatus))
URGENCIES = list(get_args(Urgency))
ANIMAL_TYPES = ["dog", "cat", "bird", "cow", "other"]


def home_for(user: User) -> str:
    return "/ngo/dashboard" if user.role == "ngo" else "/dashboard"


def _gate(user: Optional[User], role: Optional[str] = None) -> Optional[RedirectResponse]:
    """Redirect anonymous users to /auth and the wrong role to its own dashboard."""
    if user is None:
        return RedirectResponse(url="/auth", status_code=303)
    if role is not None and user.role != role:
        return RedirectResponse(url=home_for(user), status_code=303)
    return None


def _render(request: Request, name: str, user: Optional[User], **context) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        name,
        {"current_user": user, **context},
    )


@router.get("/", response_class=HTMLResponse)
def index(request: Request, user: OptionalUserDep):
    if user is not None:
        return RedirectResponse(url=home_for(user), status_code=303)
    return _render(request, "index.html", None)


@router.get("/auth", response_class=HTMLResponse)
def auth_page(request: Request, user: OptionalUserDep):
    if user is not None:
        return RedirectResponse(url=home_for(user), status_code=303)
    return _render(request, "auth.html", None)


@router.get("/dashboard", response_class=HTMLResponse)
def user_dashboard(request: Request, session: SessionDep, user: OptionalUserDep):
    """Individual dashboard: the user's own reports."""
    redirect = _gate(user, "individual")
    if redirect:
        return redirect

    reports = load_reported_animals(session, user)
    return _render(request, "dashboard.html", user, reports=reports)


@router.get("/report", response_class=HTMLResponse)
def report_page(request: Request, user: OptionalUserDep):
    redirect = _gate(user, "individual")
    if redirect:
        return redirect

    return _render(
        request,
        "report.html",
        user,
        animal_types=ANIMAL_TYPES,
        urgencies=URGENCIES,
    )


@router.get("/adoptions", response_class=HTMLResponse)
def adoptions_page(
    request: Request,
    session: SessionDep,
    user: OptionalUserDep,
    q: Optional[str] = None,
):
    animals = load_available_animals(session, q)
    return _render(request, "adoptions.html", user, animals=animals, q=q or "")


@router.get("/vets", response_class=HTMLResponse)
def vets_page(
    request: Request,
    session: SessionDep,
    user: OptionalUserDep,
    location: Optional[str] = None,
):
    redirect = _gate(user)
    if redirect:
        return redirect

    vets = []
    if location and location.strip():
        vets = find_nearby_veterinarians(session, location)
    return _render(request, "vets.html", user, vets=vets, location=location or "")


@router.get("/ngo/dashboard", response_class=HTMLResponse)
def ngo_dashboard(request: Request, session: SessionDep, user: OptionalUserDep):
    redirect = _gate(user, "ngo")
    if redirect:
        return redirect

    status_counts = dict(
        session.exec(
            select(ReportedAnimal.status, func.count(ReportedAnimal.id)).group_by(
                ReportedAnimal.status
            )
        ).all()
    )
    listing_count = session.exec(
        select(func.count(AdoptableAnimal.id)).where(
            AdoptableAnimal.listed_by_id == user.id
        )
    ).one()

    return _render(
        request,
        "ngo_dashboard.html",
        user,
        status_counts={s: status_counts.get(s, 0) for s in REPORT_STATUSES},
        listing_count=listing_count,
    )


@router.get("/ngo/reported-animals", response_class=HTMLResponse)
def ngo_reported_animals(
    request: Request,
    session: SessionDep,
    user: OptionalUserDep,
    status: Optional[str] = None,
    urgency: Optional[str] = None,
    q: Optional[str] = None,
):
    """Case triage table with status/urgency filters and free-text search."""
    redirect = _gate(user, "ngo")
    if redirect:
        return redirect

    status = status if status in REPORT_STATUSES else None
    urgency = urgency if urgency in URGENCIES else None
    reports = load_reported_animals(session, user, status=status, urgency=urgency)

    if q and q.strip():
        needle = q.strip().lower()
        reports = [
            r
            for r in reports
            if needle in r.animal_type.lower()
            or needle in r.location.lower()
            or needle in r.description.lower()
        ]

    return _render(
        request,
        "ngo_reported_animals.html",
        user,
        reports=reports,
        statuses=REPORT_STATUSES,
        urgencies=URGENCIES,
        filters={"status": status or "", "urgency": urgency or "", "q": q or ""},
    )


@router.get("/ngo/manage-adoptions", response_class=HTMLResponse)
def manage_adoptions(request: Request, session: SessionDep, user: OptionalUserDep):
    redirect = _gate(user, "ngo")
    if redirect:
        return redirect

    return _render(
        request,
        "ngo_manage_adoptions.html",
        user,
        animals=load_ngo_animals(session, user),
        statuses=ADOPTION_STATUSES,
        animal_types=ANIMAL_TYPES,
    )
