"""Allow ``python -m zettelvc``."""
from zettelvc.main import main

if __name__ == "__main__":
    main()
