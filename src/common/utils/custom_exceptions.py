class ReservationError(Exception):
    status_code = 500


class ValidationError(ReservationError):
    status_code = 400


class ConflictError(ReservationError):
    status_code = 409


class AuthorizationError(ReservationError):
    status_code = 403


class NotFoundError(ReservationError):
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(str(self))

    def __str__(self):
        return f"{self.resource} '{self.identifier}' not found"


class InvalidTransitionError(ReservationError):
    status_code = 409

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(str(self))

    def __str__(self):
        return (
            f"cannot move booking from {getattr(self.current, 'value', self.current)} "
            f"to {getattr(self.requested, 'value', self.requested)}"
        )


class IntegrityError(ReservationError):
    status_code = 422


class TransientStoreError(ReservationError):
    status_code = 503


class StoreTimeoutError(TransientStoreError, TimeoutError):
    pass


class TransientObjectStoreError(ReservationError):
    status_code = 503


class ObjectStoreTimeoutError(TransientObjectStoreError, TimeoutError):
    pass


class TransitionReconciliationError(ReservationError):
    status_code = 500

    def __init__(self, storage_key: str, message: str):
        self.storage_key = storage_key
        super().__init__(f"{message} (storage key: {storage_key})")


class SerializationFailure(ReservationError):
    """A conditional transactional write lost a race with another writer."""

    status_code = 409


class KeyWrapperUnavailableError(ReservationError):
    status_code = 500

    def __init__(self, document_id: str, key_wrapping):
        self.document_id = document_id
        self.key_wrapping = key_wrapping
        super().__init__(
            f"document {document_id} needs a {getattr(key_wrapping, 'value', key_wrapping)} "
            f"key wrapper, none is configured"
        )
