# discovery/normalizer.py
import copy

# jCal availability and raw IPFS payloads are very dynamic and break the
# index's dynamic mappings. Not indexed until we need search by availability.
VOLATILE_FIELDS = ("ipfs", "availability")
VOLATILE_OFFER_FIELDS = ("ipfs", "timeSlots")

def normalize_for_index(listing: dict) -> dict:
    doc = copy.deepcopy(listing)
    for field in VOLATILE_FIELDS:
        doc.pop(field, None)
    for offer in doc.get("offers") or []:
        if isinstance(offer, dict):
            for field in VOLATILE_OFFER_FIELDS:
                offer.pop(field, None)

    # price.amount is a decimal string everywhere else
    price = doc.get("price")
    if isinstance(price, dict):
        amount = price.get("amount")
        if isinstance(amount, (int, float)) and not isinstance(amount, bool):
            price["amount"] = str(amount)
    return doc
