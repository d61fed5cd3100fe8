from fastapi import APIRouter

from iskolar.modules.applicants.router import router as applicants_router
from iskolar.modules.applications.router import router as applications_router
from iskolar.modules.applications.staff_router import router as staff_applications_router
from iskolar.modules.requirements.router import router as requirements_router
from iskolar.modules.scholarships.router import router as scholarships_router
from iskolar.modules.validation.router import router as validation_router

api_router = APIRouter()

api_router.include_router(scholarships_router, prefix="/scholarships", tags=["Scholarships"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(applicants_router, prefix="/me", tags=["Profile"])

api_router.include_router(requirements_router, prefix="/me", tags=["Requirements"])

api_router.include_router(
    staff_applications_router,
    prefix="/staff",
    tags=["Staff - Applications"],
)

api_router.include_router(validation_router, prefix="/staff", tags=["Staff - Validation"])
