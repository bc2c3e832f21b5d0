from fastapi import APIRouter


def register_routers(router: APIRouter) -> None:
    from leadcapture.api.modules.leads.routes import router as leads_router

    router.include_router(leads_router, prefix="/api", tags=["Leads"])
