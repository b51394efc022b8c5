from dotenv import load_dotenv
load_dotenv()

import uvicorn

from src.app import create_app
from src.utils.logging_config import get_logger

logger = get_logger("persona.main")

app = create_app()


if __name__ == "__main__":
    logger.info("Starting chat server on http://localhost:3001")
    uvicorn.run("src.main:app", host="0.0.0.0", port=3001)
