#!/usr/bin/env python3
"""
Simple script to view a generated document in a readable format
"""

import json
import sys
from pathlib import Path


def _print_nodes(nodes, depth=1):
    for node in nodes:
        indent = "   " * depth
        if node["type"] == "text":
            print(f"{indent}{node['text']}")
            continue
        attributes = " ".join(f'{k}="{v}"' for k, v in node.get("attributes", {}).items())
        print(f"{indent}<{node['type']}{' ' + attributes if attributes else ''}>")
        _print_nodes(node.get("children", []), depth + 1)


def view_document(json_file):
    """View a document in a readable format"""

    # load the document
    with open(json_file, 'r', encoding='utf-8') as f:
        document = json.load(f)

    print(f"🎯 {document['kind'].upper()}: {document['title']}")
    print("=" * 60)
    print(f"📅 Created: {document['created_at']}")
    print(f"📊 Total Units: {len(document['units'])}")
    if document.get("metadata", {}).get("strategy"):
        print(f"🧭 Parsed with: {document['metadata']['strategy']}")
    print("=" * 60)

    for i, unit in enumerate(document['units'], 1):
        if document['kind'] == "flashcards":
            print(f"\n📌 CARD {i}")
            print(f"   Q: {unit['question']}")
            print(f"   A: {unit['answer']}")
            continue

        if document['kind'] == "presentation":
            print(f"\n📌 SLIDE {i}: {unit['id']} (layout: {unit.get('layout') or 'default'})")
            if unit.get("root_image"):
                print(f"   🖼  {unit['root_image']['query']}")
            _print_nodes(unit.get("content", []))
            continue

        print(f"\n📌 {i}: {unit['title']}")
        print(f"   Type: {unit.get('unit_type', 'content')}")
        print("-" * 40)
        if document['kind'] == "quiz":
            for j, option in enumerate(unit.get("options", [])):
                mark = " ✓" if unit.get("correct_answer") == j else ""
                print(f"   {'ABCD'[j]}) {option}{mark}")
        else:
            for line in unit.get("body", "").split("\n"):
                print(f"   {line}")

    if document.get("outline"):
        print("\n📝 OUTLINE")
        for item in document["outline"]:
            print(f"   {item.splitlines()[0]}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python view_document.py <json_file>")
        sys.exit(1)

    json_file = sys.argv[1]
    if not Path(json_file).exists():
        print(f"Error: File not found: {json_file}")
        sys.exit(1)

    view_document(json_file)
