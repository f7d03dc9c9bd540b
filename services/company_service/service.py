import structlog

from services.user_service.models import ApplicationUser
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import NotFoundError, ValidationError
from shared.security import Caller, Role, require_role

from .models import Company
from .schemas import CompanyCreate

logger = structlog.get_logger(__name__)


class CompanyService:

    @staticmethod
    async def list_companies(uow: UnitOfWork) -> list[Company]:
        return await uow.company.get_all()

    @staticmethod
    async def get_company(uow: UnitOfWork, company_id: int) -> Company:
        company = await uow.company.get(Company.id == company_id)
        if not company:
            raise NotFoundError("Company", company_id)
        return company

    @staticmethod
    async def create_company(uow: UnitOfWork, caller: Caller, data: CompanyCreate) -> Company:
        require_role(caller, Role.ADMIN)
        company = uow.company.add(Company(**data.model_dump()))
        await uow.save()
        logger.info("company_created", company_id=company.id)
        return company

    @staticmethod
    async def update_company(uow: UnitOfWork, caller: Caller, company_id: int, data: CompanyCreate) -> Company:
        require_role(caller, Role.ADMIN)
        await CompanyService.get_company(uow, company_id)
        company = await uow.company.update(Company(id=company_id, **data.model_dump()))
        await uow.save()
        return company

    @staticmethod
    async def delete_company(uow: UnitOfWork, caller: Caller, company_id: int) -> None:
        require_role(caller, Role.ADMIN)
        company = await CompanyService.get_company(uow, company_id)
        if await uow.application_user.exists(ApplicationUser.company_id == company_id):
            raise ValidationError({"company_id": ["Company still has users."]})
        await uow.company.remove(company)
        await uow.save()
        logger.info("company_deleted", company_id=company_id)
