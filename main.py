from filebox.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("filebox.main:app", host="0.0.0.0", port=8000)
