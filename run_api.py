#!/usr/bin/env python3
"""
Run the SafeRoute Incident API.
Set INCIDENT_SOURCE_URL in environment (or .env) to proxy a remote incident store; otherwise incidents are kept in memory.
"""
import os

from dotenv import load_dotenv
import uvicorn

load_dotenv()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("RELOAD", "0") == "1",
    )
