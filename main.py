#!/usr/bin/env python3
"""
lessonstream

A FastAPI application that turns streamed AI output into structured lessons,
summaries, quizzes, lesson plans and slide decks while the text is still
arriving.

To start the server:
    python main.py
"""

import sys
from pathlib import Path

# add the repo root to python path so src.lessonstream imports resolve
sys.path.insert(0, str(Path(__file__).parent))

# start the fastapi server when this file is run
if __name__ == "__main__":
    import uvicorn
    # run the api app on port 8000 with auto-reload for development
    uvicorn.run("src.lessonstream.api:app", host="0.0.0.0", port=8000, reload=True)
