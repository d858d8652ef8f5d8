"""Allow ``python -m unireg``."""

from unireg.cli import main

if __name__ == "__main__":
    main()
