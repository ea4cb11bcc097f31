import uvicorn

from onboarding_bridge.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("onboarding_bridge.main:app", host="0.0.0.0", port=settings.api_port)


if __name__ == "__main__":
    main()
