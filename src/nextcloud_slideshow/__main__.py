"""Allow ``python -m nextcloud_slideshow``."""

from .cli import main

if __name__ == "__main__":
    main()
