#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Startup script for the #p instrumentation API server
Checks dependencies and starts the server with proper configuration
"""

import socket
import sys
from pathlib import Path

from config import HashpConfig


def check_dependencies():
    """Check if required modules are installed"""
    required = ['flask', 'flask_cors', 'requests']
    missing = []

    for module in required:
        try:
            __import__(module)
        except ImportError:
            missing.append(module)

    if missing:
        print("❌ Missing dependencies:")
        for mod in missing:
            print(f"   - {mod}")
        print("\n💡 Install them with:")
        print("   pip install -e .")
        return False

    return True


def check_pipeline_modules(root: Path = Path(__file__).resolve().parent):
    """Check if pipeline modules exist"""
    required_files = [
        'marker_preprocessor.py',
        'marker_scanner.py',
        'label_generator.py',
        'wrap_builder.py',
        'skip_context.py',
        'position_handlers.py',
        'rewriter.py',
        'api_server.py'
    ]

    missing = [file for file in required_files if not (root / file).exists()]

    if missing:
        print("❌ Missing pipeline modules:")
        for file in missing:
            print(f"   - {file}")
        print("\n💡 Make sure you're running this from the project root directory")
        return False

    return True


def check_port(port: int) -> bool:
    """Check if port is available"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(('localhost', port))
            return True
        except OSError:
            print(f"⚠️  Warning: Port {port} is already in use")
            print("   The server might already be running, or another app is using this port")
            return False


def print_banner():
    """Print startup banner"""
    print("\n" + "=" * 80)
    print(" " * 15 + "#p INSTRUMENTATION API - STARTUP SCRIPT")
    print("=" * 80 + "\n")


def print_instructions(config: HashpConfig):
    """Print usage instructions"""
    print("\n" + "=" * 80)
    print("📖 QUICK START GUIDE")
    print("=" * 80)
    print(f"\n1. Server Status:")
    print(f"   ✅ API server running on http://localhost:{config.port}")
    print("\n2. Instrument some code:")
    print(f"   curl -X POST localhost:{config.port}/api/instrument \\")
    print("        -H 'Content-Type: application/json' \\")
    print("        -d '{\"code\": \"#p total = 1 + 1\"}'")
    print("\n3. Stop Server:")
    print("   • Press Ctrl+C in this terminal")
    print("\n" + "=" * 80 + "\n")


def start_server(config: HashpConfig):
    """Start the Flask server"""
    print("🚀 Starting API server...\n")

    try:
        from api_server import app

        print_instructions(config)

        app.run(
            host=config.host,
            port=config.port,
            debug=config.debug,
            threaded=True,
            use_reloader=False  # Prevent double startup
        )

    except KeyboardInterrupt:
        print("\n\n" + "=" * 80)
        print("👋 Server stopped by user")
        print("=" * 80 + "\n")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Error starting server: {e}")
        sys.exit(1)


def main():
    """Main entry point"""
    print_banner()
    config = HashpConfig.from_env()

    print("🔍 Checking system requirements...\n")

    # ast.unparse arrived in 3.9
    if sys.version_info < (3, 9):
        print("❌ Python 3.9 or higher required")
        print(f"   Current version: {sys.version}")
        sys.exit(1)
    print("✅ Python version: OK")

    if not check_dependencies():
        sys.exit(1)
    print("✅ Dependencies: OK")

    if not check_pipeline_modules():
        sys.exit(1)
    print("✅ Pipeline modules: OK")

    if not check_port(config.port):
        sys.exit(1)
    print(f"✅ Port {config.port}: Available")

    print("\n" + "=" * 80)

    start_server(config)


if __name__ == '__main__':
    main()
