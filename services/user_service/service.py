from services.company_service.models import Company
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import NotFoundError, ValidationError
from shared.security import Caller

from .models import ApplicationUser
from .schemas import UserCreate


class UserService:

    @staticmethod
    async def register(uow: UnitOfWork, data: UserCreate) -> ApplicationUser:
        existing = await uow.application_user.get_by_email(data.email)
        if existing:
            raise ValidationError({"email": ["Email already registered."]})
        if data.company_id is not None and not await uow.company.exists(Company.id == data.company_id):
            raise ValidationError({"company_id": [f"Company {data.company_id} does not exist."]})

        user = uow.application_user.add(ApplicationUser(**data.model_dump(exclude_none=True)))
        await uow.save()
        return user

    @staticmethod
    async def get_user(uow: UnitOfWork, user_id: str) -> ApplicationUser:
        user = await uow.application_user.get(ApplicationUser.id == user_id, include=[ApplicationUser.company])
        if not user:
            raise NotFoundError("ApplicationUser", user_id)
        return user

    @staticmethod
    def caller_for(user: ApplicationUser) -> Caller:
        """Capability record for a stored profile, for callers that only hold the profile."""
        return Caller(user_id=user.id, roles=frozenset({user.role}))
