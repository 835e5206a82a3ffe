# scripts/write_tags.py: batch-write card URLs to NTAG213/215 tags
# pip install -e .[nfc]
import csv
import sys
import time

import ndef
import nfc

from api.core.utils import card_public_url


def on_connect(tag, card_id):
    uri = card_public_url(card_id)
    message = [ndef.UriRecord(uri)]
    try:
        tag.ndef.records = message
        print(f"[OK] Written: {uri}")
        return True
    except Exception as e:
        print("[ERROR]", e)
        return False


def main(csv_path="cards.csv"):
    with open(csv_path, newline='', encoding='utf-8') as f:
        rows = [r["card_id"] for r in csv.DictReader(f)]
    for card_id in rows:
        print(f"== Hold the tag to write: {card_id}")
        with nfc.ContactlessFrontend('usb') as clf:
            clf.connect(rdwr={'on-connect': lambda tag: on_connect(tag, card_id)})
            time.sleep(0.5)


if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else "cards.csv"
    main(path)
