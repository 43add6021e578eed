# services/user_service.py
import logging

from app.core.errors import NotFoundError
from app.models.schemas.user import UserCreateModel, UserModel, UserUpdateModel
from app.repositories.base import StorageGateway

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, storage: StorageGateway):
        self.storage = storage

    def create_user(self, user_data: UserCreateModel) -> UserModel:
        with self.storage.unit_of_work():
            user_orm = self.storage.create_user(user_data.name)
            user = UserModel.model_validate(user_orm)
        logger.info("Created user %s", user.id)
        return user

    def update_user(self, user_id: str, user_data: UserUpdateModel) -> UserModel:
        with self.storage.unit_of_work():
            user_orm = self.storage.update_user(user_id, user_data.name)
            if user_orm is None:
                raise NotFoundError(f"User {user_id} not found.")
            return UserModel.model_validate(user_orm)

    def delete_user(self, user_id: str) -> None:
        """Deleting an unknown user is not an error."""
        with self.storage.unit_of_work():
            deleted = self.storage.delete_user(user_id)
        if deleted:
            logger.info("Deleted user %s with its assignments", user_id)
