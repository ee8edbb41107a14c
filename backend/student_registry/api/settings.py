"""
Settings API routes (closed lists and school roster).
"""

from fastapi import APIRouter, Depends

from student_registry.core.config import get_config
from student_registry.core.security import UserContext, get_current_user
from student_registry.models import LEVELS, Gender, StudentStatus
from student_registry.schemas import ChoiceResponse, RosterResponse

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/roster", response_model=RosterResponse)
def get_roster(user: UserContext = Depends(get_current_user)):
    """Levels, sheikhs and enum labels used by the registration forms."""
    school = get_config().school
    return RosterResponse(
        levels=LEVELS,
        sheikhs=school.sheikhs,
        genders=[ChoiceResponse(value=g.value, label=g.label) for g in Gender],
        statuses=[ChoiceResponse(value=s.value, label=s.label) for s in StudentStatus],
        points_increment=school.points_increment,
        priority_threshold=school.priority_threshold,
    )
