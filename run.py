#!/usr/bin/env python3
"""
Payment Ledger Entry Point

Starts the FastAPI server with the payment ledger.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from payment_ledger.api import run_server
from payment_ledger.config import get_config
from payment_ledger.logging_config import setup_logging_from_config


if __name__ == "__main__":
    config = get_config()
    setup_logging_from_config(config)

    print("💸 Starting Payment Ledger...")
    print(f"🗄️  Storage backend: {config.storage_backend}")
    print(f"🔁 Transfer backend: {config.transfer_backend}")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down Payment Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
