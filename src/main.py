from src.app import AppSettings, bootstrap

__all__ = ["main"]


def main() -> None:
    """Entry point for the application."""
    settings = AppSettings.from_env()
    bootstrap(settings)


if __name__ == "__main__":
    main()
