"""
Entrypoint module, in case you use `python -m censuscartogram`.
"""

from censuscartogram.cli import main

if __name__ == "__main__":
    main()
