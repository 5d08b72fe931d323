#!/usr/bin/env python3
"""
TripPay Backend Runner
Starts the API server
"""

import uvicorn
from trippay.config import settings

if __name__ == "__main__":
    print("🚀 Starting TripPay Backend Server...")
    print(f"   URL: http://{settings.host}:{settings.port}")
    print(f"   Docs: http://localhost:{settings.port}/docs")
    print()

    uvicorn.run(
        "trippay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
