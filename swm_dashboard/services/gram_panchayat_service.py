from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from swm_dashboard.core.exceptions import (
    AuthProviderError,
    DuplicateEmailError,
    DuplicateEntityError,
    PersistenceError,
    ValidationFailedError,
    validation_failed,
)
from swm_dashboard.core.logging import get_logger
from swm_dashboard.models.gram_panchayat import GramPanchayat
from swm_dashboard.schemas.common import FieldChange, as_dict, disallowed_fields
from swm_dashboard.schemas.gram_panchayat import (
    UPDATABLE_FIELDS,
    GramPanchayatCreate,
    GramPanchayatResponse,
    GramPanchayatUpdate,
    mrf_mapping_error,
)
from swm_dashboard.services.auth_provider import AuthProvider
from swm_dashboard.utils.ids import is_valid_id

logger = get_logger("services.gram_panchayat")

DUPLICATE_EMAIL_PHRASES = ("already exists", "already in use", "duplicate", "unique")


def is_duplicate_email_error(exc: AuthProviderError) -> bool:
    """True when the auth server rejected an account because its email is taken."""
    if exc.code == "USER_ALREADY_EXISTS":
        return True
    message = (exc.message or "").lower()
    return "email" in message and any(phrase in message for phrase in DUPLICATE_EMAIL_PHRASES)


class GramPanchayatService:
    def __init__(
        self,
        db: Session,
        auth_provider: Optional[AuthProvider] = None,
        auth_headers: Optional[Mapping[str, str]] = None,
    ):
        self.db = db
        self.auth_provider = auth_provider
        self.auth_headers = auth_headers or {}

    def _get(self, gp_id: str) -> Optional[GramPanchayat]:
        if not is_valid_id(gp_id):
            return None
        return self.db.query(GramPanchayat).filter(GramPanchayat.id == gp_id).first()

    def _find_by_name_and_taluk(self, name: str, taluk: str) -> Optional[GramPanchayat]:
        return (
            self.db.query(GramPanchayat)
            .filter(GramPanchayat.name == name, GramPanchayat.taluk == taluk)
            .first()
        )

    @staticmethod
    def _duplicate_message(name: str, taluk: str) -> str:
        return f'Gram Panchayat with name "{name}" already exists in taluk "{taluk}"'

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error while trying to {action}: {str(e)}")
            raise PersistenceError(f"Failed to {action}: {str(e)}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> List[GramPanchayatResponse]:
        """All panchayats in insertion order."""
        rows = (
            self.db.query(GramPanchayat)
            .order_by(GramPanchayat.date_created.asc(), GramPanchayat.id.asc())
            .all()
        )
        return [GramPanchayatResponse.model_validate(row) for row in rows]

    def get_by_id(self, gp_id: str) -> Optional[GramPanchayatResponse]:
        """The panchayat or None; malformed ids are treated as absent."""
        gram_panchayat = self._get(gp_id)
        if gram_panchayat is None:
            return None
        return GramPanchayatResponse.model_validate(gram_panchayat)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _create_account(self, email: str, password: str, name: str) -> str:
        if self.auth_provider is None:
            raise RuntimeError("GramPanchayatService needs an AuthProvider to create accounts")

        try:
            result = self.auth_provider.create_user(
                {"email": email, "password": password, "name": name},
                headers=self.auth_headers,
            )
        except AuthProviderError as e:
            if is_duplicate_email_error(e):
                logger.warning(f"Account email already registered: {email}")
                raise DuplicateEmailError(
                    f'A user with email "{email}" already exists. Please use a different email address.'
                )
            raise

        user = (result or {}).get("user") if isinstance(result, dict) else None
        if not user:
            raise AuthProviderError("Failed to create user account")
        user_id = user.get("id")
        if not user_id:
            raise AuthProviderError("Failed to create user account: user ID is missing")
        return str(user_id)

    def create(
        self,
        email: str,
        password: str,
        data: Union[GramPanchayatCreate, Mapping[str, Any]],
    ) -> GramPanchayatResponse:
        """
        Create a panchayat and the account that administers it.

        Order matters: input validation and the (name, taluk) duplicate check run
        before the account is created, so a rejected request has no side effects.
        The account creation and the insert are not atomic; when the insert fails
        the account is left behind and logged.
        """
        try:
            payload = GramPanchayatCreate.model_validate(data)
        except ValidationError as e:
            raise validation_failed(e)
        if not email or not password:
            raise ValidationFailedError("Email and password are required")

        logger.info(f"Creating gram panchayat {payload.name} in taluk {payload.taluk}")

        if self._find_by_name_and_taluk(payload.name, payload.taluk) is not None:
            logger.warning(f"Duplicate gram panchayat {payload.name} / {payload.taluk}")
            raise DuplicateEntityError(self._duplicate_message(payload.name, payload.taluk))

        user_id = self._create_account(email, password, payload.name)

        gram_panchayat = GramPanchayat(
            name=payload.name,
            taluk=payload.taluk,
            village=payload.village,
            sarpanch=payload.sarpanch,
            status=payload.status,
            mrf_mapped=payload.mrf_mapped,
            mrf_unit_id=payload.mrf_unit_id,
            mrf_unit_name=payload.mrf_unit_name,
            user_id=user_id,
            households=0,
            shops=0,
            institutions=0,
            swm_sheds=0,
        )

        try:
            self.db.add(gram_panchayat)
            self.db.commit()
            self.db.refresh(gram_panchayat)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(
                f"Gram panchayat insert failed after account {user_id} was created: {str(e)}"
            )
            raise DuplicateEntityError(self._duplicate_message(payload.name, payload.taluk))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Gram panchayat insert failed after account {user_id} was created: {str(e)}"
            )
            raise PersistenceError(f"Failed to create gram panchayat: {str(e)}")

        logger.info(f"Gram panchayat {gram_panchayat.id} created with user {user_id}")
        return GramPanchayatResponse.model_validate(gram_panchayat)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update(
        self,
        gp_id: str,
        changes: Union[GramPanchayatUpdate, Mapping[str, Any], List[FieldChange]],
    ) -> Optional[GramPanchayatResponse]:
        """
        Apply an explicit change set. Fields that are not part of the change set
        keep their stored values; a change to None clears a nullable column.
        """
        if isinstance(changes, list):
            rejected = disallowed_fields(changes, UPDATABLE_FIELDS)
            if rejected:
                raise ValidationFailedError(f"Fields cannot be updated: {', '.join(rejected)}")
            changes = as_dict(changes)
        try:
            change_set = GramPanchayatUpdate.model_validate(changes).to_changes()
        except ValidationError as e:
            raise validation_failed(e)

        gram_panchayat = self._get(gp_id)
        if gram_panchayat is None:
            return None

        if not change_set:
            return GramPanchayatResponse.model_validate(gram_panchayat)

        for change in change_set:
            setattr(gram_panchayat, change.field, change.value)

        message = mrf_mapping_error(gram_panchayat.mrf_mapped, gram_panchayat.mrf_unit_id)
        if message:
            self.db.rollback()
            raise ValidationFailedError(message)

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Update of gram panchayat {gp_id} hit a unique constraint: {str(e)}")
            raise DuplicateEntityError("A Gram Panchayat with this name already exists in the taluk")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating gram panchayat {gp_id}: {str(e)}")
            raise PersistenceError(f"Failed to update gram panchayat: {str(e)}")

        self.db.refresh(gram_panchayat)
        logger.info(
            f"Gram panchayat {gp_id} updated: {', '.join(change.field for change in change_set)}"
        )
        return GramPanchayatResponse.model_validate(gram_panchayat)

    def delete(self, gp_id: str) -> bool:
        """Hard delete. The panchayat's account and metrics are left untouched."""
        gram_panchayat = self._get(gp_id)
        if gram_panchayat is None:
            return False

        self.db.delete(gram_panchayat)
        self._commit(f"delete gram panchayat {gp_id}")
        logger.info(f"Gram panchayat {gp_id} deleted")
        return True

    # ------------------------------------------------------------------
    # MRF mapping
    # ------------------------------------------------------------------

    def map_mrf(self, gp_id: str, mrf_id: str, mrf_name: str) -> Optional[GramPanchayatResponse]:
        """Point the panchayat at an MRF unit. The unit is not looked up."""
        if not mrf_id:
            raise ValidationFailedError("mrfUnitId is required to map an MRF")

        gram_panchayat = self._get(gp_id)
        if gram_panchayat is None:
            return None

        gram_panchayat.mrf_mapped = True
        gram_panchayat.mrf_unit_id = mrf_id
        gram_panchayat.mrf_unit_name = mrf_name
        self._commit(f"map MRF {mrf_id} to gram panchayat {gp_id}")
        self.db.refresh(gram_panchayat)

        logger.info(f"Gram panchayat {gp_id} mapped to MRF {mrf_id}")
        return GramPanchayatResponse.model_validate(gram_panchayat)

    def unmap_mrf(self, gp_id: str) -> Optional[GramPanchayatResponse]:
        gram_panchayat = self._get(gp_id)
        if gram_panchayat is None:
            return None

        gram_panchayat.mrf_mapped = False
        gram_panchayat.mrf_unit_id = None
        gram_panchayat.mrf_unit_name = None
        self._commit(f"unmap MRF from gram panchayat {gp_id}")
        self.db.refresh(gram_panchayat)

        logger.info(f"Gram panchayat {gp_id} unmapped from its MRF")
        return GramPanchayatResponse.model_validate(gram_panchayat)
