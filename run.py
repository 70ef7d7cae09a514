import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables before the app reads its settings
load_dotenv()

if __name__ == "__main__":
    uvicorn.run(
        "meetwhen.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=os.getenv("API_RELOAD", "true").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
