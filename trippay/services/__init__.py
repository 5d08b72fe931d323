# Services Package

# Lazy imports to avoid circular dependencies
def get_checkout_service():
    from trippay.services.checkout_service import checkout_service
    return checkout_service
