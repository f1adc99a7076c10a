"""Export functionality for CSV and JSON."""

import json

import pandas as pd

from ..engine.models import STATS_ID, Account, BadgeAward, EntityStats, NameSignal
from ..store.backend import EntityStore

POSITION_COLUMNS = [
    'id',
    'curator',
    'subgraph_id',
    'name_signal',
    'signal',
    'signalled_tokens',
    'unsignalled_tokens',
    'name_signal_cost_basis',
    'name_signal_cost_basis_per_unit',
    'signal_cost_basis',
    'signal_cost_basis_per_unit',
]


def positions_frame(store: EntityStore) -> pd.DataFrame:
    """All positions as a DataFrame; decimals and big integers are kept as strings."""
    rows = [position.to_dict() for position in store.all(NameSignal)]
    df = pd.DataFrame(rows, columns=POSITION_COLUMNS)
    # Token amounts overflow int64, keep them exact
    for column in ('name_signal', 'signalled_tokens', 'unsignalled_tokens'):
        df[column] = df[column].astype(str)
    return df


def export_positions_csv(store: EntityStore, filepath: str):
    """Export every position to CSV."""
    df = positions_frame(store)
    df.to_csv(filepath, index=False)


def export_state_json(store: EntityStore, filepath: str):
    """Export global stats, accounts and awards to JSON."""
    stats = store.load(EntityStats, STATS_ID) or EntityStats(id=STATS_ID)
    export_data = {
        'stats': stats.to_dict(),
        'accounts': [account.to_dict() for account in store.all(Account)],
        'awards': [
            award.to_dict()
            for award in sorted(store.all(BadgeAward), key=lambda award: award.global_award_number)
        ],
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
