import uvicorn

from llm_adapter.core.app_factory import create_app

app = create_app()


if __name__ == "__main__":
    uvicorn.run("llm_adapter.main:app", host="0.0.0.0", port=8000)
