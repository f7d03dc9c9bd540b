from typing import Optional

from shared.data_access.repository import Repository

from .models import ApplicationUser


class ApplicationUserRepository(Repository[ApplicationUser]):
    model = ApplicationUser

    async def get_by_email(self, email: str) -> Optional[ApplicationUser]:
        return await self.get(ApplicationUser.email == email)
