from shared.data_access.repository import UpdatableRepository

from .models import Company


class CompanyRepository(UpdatableRepository[Company]):
    model = Company
