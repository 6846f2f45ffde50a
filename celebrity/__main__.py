import uvicorn

from .config import Config


def main() -> None:
    uvicorn.run("celebrity.app:app", host=Config.HOST, port=Config.PORT)


if __name__ == "__main__":
    main()
