import uvicorn

from coordinator.app.main import app
from coordinator.app.settings import settings


def serve():
    uvicorn.run(app, host=settings.REST_HOST, port=settings.REST_PORT)


if __name__ == "__main__":
    serve()
