import re
from urllib.parse import quote

WHATSAPP_URL = "https://wa.me/{number}?text={text}"


def compose_admin_message(schema, selections, voter_name, phone, ballot_id):
    lines = ["Bonjour Admin,", "Voici mon vote :"]
    for race in schema.races:
        choice = selections.get(race.id)
        ids = [choice] if isinstance(choice, str) else list(choice or [])
        names = [
            candidate.name
            for candidate in (schema.candidate(race.id, cid) for cid in ids)
            if candidate is not None
        ]
        lines.append(f"- {race.title} : {', '.join(names)}")
    lines.extend(
        [
            "",
            f"Nom : {voter_name}",
            f"Téléphone : {phone}",
            f"Reçu : {ballot_id}",
        ]
    )
    return "\n".join(lines)


def build_admin_message_url(schema, selections, voter_name, phone, ballot_id, contact):
    """Pre-filled WhatsApp link summarizing a ballot for the admin contact."""
    number = re.sub(r"\D", "", contact or "")
    if not number:
        return None
    text = compose_admin_message(schema, selections, voter_name, phone, ballot_id)
    return WHATSAPP_URL.format(number=number, text=quote(text, safe=""))
