#!/usr/bin/env python3
"""
Deposit Slip Service Entry Point

Starts the FastAPI server serving the deposit slip form and submission API.
"""

import sys

from deposit_slip.api import run_server
from deposit_slip.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🏦 Starting Deposit Slip Service...")
    print(f"🗄️  Storage backend: {config.storage_type}")
    print(f"🌐 Form available at: http://localhost:{config.api_port}")
    print()

    try:
        run_server(config)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Deposit Slip Service...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
