#!/usr/bin/env python3
"""Start the Flask app using Waitress in a production-friendly way.

Usage:
  python scripts/run_production_server.py

Configuration comes from the environment (or a .env file). HOST and PORT
default to 0.0.0.0:5000.
"""
import os

from waitress import serve

from verifiedonchain import create_app


def main():
    app = create_app()
    serve(app, host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '5000')))


if __name__ == '__main__':
    main()
