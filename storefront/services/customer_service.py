# storefront/services/customer_service.py
import uuid

from sqlalchemy.orm import Session

from storefront.data.models.customer import CustomerModel
from storefront.domain.exceptions import NotFound
from storefront.domain.schemas import CustomerCreate
from storefront.repos.customer_repo import CustomerRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.repo = CustomerRepo(db)

    def create_customer(self, payload: CustomerCreate) -> CustomerModel:
        email = payload.email.lower()
        existing = self.repo.get_by_email(email)
        if existing:
            return existing

        customer = CustomerModel(
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
        )
        created = self.repo.create_customer(customer)
        logger.info(f"Customer {created.id} registered")
        return created

    def get_customer(self, customer_id: uuid.UUID) -> CustomerModel:
        customer = self.repo.get_customer(customer_id)
        if not customer:
            raise NotFound("Customer not found")
        return customer
