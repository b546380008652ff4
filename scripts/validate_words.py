import argparse
import os
import sys

# Add parent directory to path so the script runs from a source checkout
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kanatype.services.kana import romanize
from kanatype.utils.words import BUNDLED_WORDS_PATH, active_words, load_words_file


def main() -> int:
    parser = argparse.ArgumentParser(description="Check a display,kana word list")
    parser.add_argument("path", nargs="?", default=str(BUNDLED_WORDS_PATH))
    parser.add_argument("--show", action="store_true", help="print every word with its romaji")
    args = parser.parse_args()

    parsed = load_words_file(args.path)
    active = active_words(parsed.words)

    print(f"{args.path}")
    print(f"   {len(parsed.words)} words, {len(active)} playable, {len(parsed.errors)} errors")

    for error in parsed.errors:
        print(f"   {error}")

    if args.show:
        for word in active:
            print(f"   {word.display:<12} {word.phonetic:<12} {romanize(word.phonetic)}")

    return 1 if parsed.errors else 0


if __name__ == "__main__":
    sys.exit(main())
