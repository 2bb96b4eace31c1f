# main.py
from alea.app import create_app
from alea.config import load_settings

# Create FastAPI app
app = create_app(load_settings())

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
