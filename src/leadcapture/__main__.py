import uvicorn

from leadcapture.settings import get_config


def main() -> None:
    config = get_config()
    uvicorn.run(
        "leadcapture.application:get_production_app",
        factory=True,
        host=config.api.host,
        port=config.api.port,
    )


if __name__ == "__main__":
    main()
