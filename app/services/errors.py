class OrderError(ValueError):
    """Order request rejected with a message safe to show the customer."""

    status_code = 400


class InvalidTransition(OrderError):
    """Order is not in a state that allows the requested change."""

    status_code = 409


class CatalogError(ValueError):
    """Admin catalog write rejected (duplicate SKU, bad stock target...)."""

    status_code = 400
