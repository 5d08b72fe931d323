# Routes Package
from trippay.routes.payments import router as payments_router
from trippay.routes.bookings import router as bookings_router
