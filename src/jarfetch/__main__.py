"""Allow ``python -m jarfetch``."""
from .cli import main

if __name__ == "__main__":
    main()
