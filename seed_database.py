import argparse

from foodscan.config import WORD_CACHE_DB_PATH
from foodscan.seed_data import seed_word_cache
from foodscan.word_cache import WordCache


def main():
    parser = argparse.ArgumentParser(description="Seed the food word cache with built-in vocabularies.")
    parser.add_argument("--db", default=WORD_CACHE_DB_PATH, help="SQLite file to seed")
    args = parser.parse_args()

    print(f"\n🌱 Seeding word cache: {args.db}")
    stats = seed_word_cache(WordCache(args.db))

    for bucket, count in stats.items():
        print(f"  - {bucket}: {count} new words")
    print(f"✔ Seeding complete: {sum(stats.values())} words written")


if __name__ == "__main__":
    main()
