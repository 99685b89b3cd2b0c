#!/usr/bin/env python3
"""
Example usage of lessonstream: parse a response while it streams in
"""

import sys
from pathlib import Path

# add the repo root to python path
sys.path.insert(0, str(Path(__file__).parent))

from src.lessonstream.generation_service import create_session, finish_units
from src.lessonstream.models import ContentKind

# a response as it might arrive from the model, a few bytes at a time
RESPONSE = """PAGE 1: Introduction to Volcanoes
A volcano is an opening in the Earth's crust.
Molten rock, ash and gases escape through it.

PAGE 2: Types of Volcanoes
Shield volcanoes have gentle slopes.
Stratovolcanoes are tall and steep.

PAGE 3: Summary
Volcanoes shape the land and the atmosphere. ▌"""


def main():
    """Example of feeding a byte stream into a parse session"""

    session = create_session(ContentKind.LESSON)
    data = RESPONSE.encode("utf-8")

    print("Streaming response...")
    for start in range(0, len(data), 24):
        units = session.feed(data[start:start + 24])
        titles = [f"{u.title}{'…' if u.is_provisional else ''}" for u in units]
        print(f"  {len(units)} units: {titles}")

    units = session.finalize()
    print(f"\n✓ Finalized {len(units)} pages using {session.strategy}")

    for unit in finish_units(ContentKind.LESSON, units):
        print(f"\n{unit['sequence_number']}. {unit['title']} ({unit['unit_type']})")
        for line in unit["body"].split("\n"):
            print(f"   {line}")


if __name__ == "__main__":
    main()
