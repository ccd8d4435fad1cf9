"""Request headers the backend reads to learn identity and namespace."""

CURRENT_NAMESPACE = "X-AppEngine-Current-Namespace"
DEFAULT_NAMESPACE = "X-AppEngine-Default-Namespace"

USER_EMAIL = "X-AppEngine-Internal-User-Email"
USER_ID = "X-AppEngine-Internal-User-Id"
USER_IS_ADMIN = "X-AppEngine-Internal-User-Is-Admin"
USER_FEDERATED_IDENTITY = "X-AppEngine-Internal-User-Federated-Identity"

IDENTITY_HEADERS = (USER_EMAIL, USER_ID, USER_IS_ADMIN, USER_FEDERATED_IDENTITY)
