from pathlib import Path

INDEX_PAGE = Path(__file__).with_name("index.html")


def load_index_page() -> str:
    return INDEX_PAGE.read_text(encoding="utf-8")
