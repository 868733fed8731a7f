"""
Run the StockPulse API server.
"""
import os

# Load environment
from dotenv import load_dotenv

backend_dir = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(backend_dir, ".env"))

# Run uvicorn
import uvicorn

if __name__ == "__main__":
    print("Starting StockPulse Engine...")
    print("API Docs: http://localhost:8000/docs")
    print("-" * 50)

    uvicorn.run(
        "stockpulse.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info",
    )
