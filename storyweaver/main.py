from fastapi import FastAPI

from storyweaver.api.v1.endpoints import router as api_router

app = FastAPI(title="StoryWeaver")
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"status": "ok"}
