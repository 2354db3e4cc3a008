"""Entry point for running travel-companion as a module.

Usage:
    python -m travel_companion [command] [options]
"""

from travel_companion.cli import main

if __name__ == "__main__":
    main()
