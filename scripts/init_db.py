"""Initialize the theme authoring database and storage folders."""

from src.themedeck.config import load_config


def main() -> None:
    config = load_config()
    print(f"Database initialized, storage root: {config.storage.root}")


if __name__ == "__main__":
    main()
