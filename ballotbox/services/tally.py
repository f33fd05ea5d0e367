import csv
import io

CSV_HEADER = ("poste", "candidat", "votes")


def _selected_ids(choice):
    if isinstance(choice, str):
        return [choice]
    if isinstance(choice, list):
        return [item for item in choice if isinstance(item, str)]
    return []


def tally_ballots(schema, ballots):
    """Count votes per race and candidate.

    ``ballots`` may hold Ballot rows or plain selection mappings. Selections
    naming a race or candidate that is not in ``schema`` are skipped.
    """
    counts = {
        race.id: {candidate.id: 0 for candidate in schema.candidates_for(race.id)}
        for race in schema.races
    }

    for ballot in ballots:
        selections = getattr(ballot, "selections", ballot) or {}
        for race_id, choice in selections.items():
            race_counts = counts.get(race_id)
            if race_counts is None:
                continue
            for candidate_id in set(_selected_ids(choice)):
                if candidate_id in race_counts:
                    race_counts[candidate_id] += 1

    return counts


def build_results(schema, counts):
    results = []

    for race in schema.races:
        race_counts = counts.get(race.id, {})
        total_votes = sum(race_counts.values())
        top_vote_count = max(race_counts.values(), default=0)

        winners = []
        if top_vote_count > 0:
            winners = [
                candidate
                for candidate in schema.candidates_for(race.id)
                if race_counts.get(candidate.id, 0) == top_vote_count
            ]

        candidate_results = []
        for candidate in schema.candidates_for(race.id):
            count = race_counts.get(candidate.id, 0)
            percent = (count / total_votes * 100) if total_votes > 0 else 0
            candidate_results.append(
                {"candidate": candidate, "count": count, "percent": percent}
            )

        results.append(
            {
                "race": race,
                "total_votes": total_votes,
                "candidate_results": candidate_results,
                "winner": winners[0] if len(winners) == 1 else None,
                "winners": winners,
                "is_tie": len(winners) > 1,
                "top_vote_count": top_vote_count,
            }
        )

    return results


def render_results_csv(schema, counts):
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for race in schema.races:
        race_counts = counts.get(race.id, {})
        for candidate in schema.candidates_for(race.id):
            writer.writerow([race.title, candidate.name, race_counts.get(candidate.id, 0)])
    return out.getvalue()
