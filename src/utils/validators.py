"""Data validation for AllianceRank"""
from typing import Dict, Tuple, Optional

from config.settings import SEASON_CONFIG
from src.base import BaseValidator
from src.utils.date_keys import to_date


class RankingRowValidator(BaseValidator):
    """Validate a single ranking row before it is stored"""

    def validate(self, data: Dict) -> Tuple[bool, Optional[str]]:
        """Validate ranking row"""
        errors = []

        commander = data.get('commander')
        if commander is None or not str(commander).strip():
            errors.append("Missing required field: commander")

        rank = data.get('ranking', data.get('rank'))
        try:
            if int(rank) < 1:
                errors.append(f"Invalid rank: {rank}")
        except (ValueError, TypeError):
            errors.append(f"Invalid rank format: {rank}")

        return len(errors) == 0, '; '.join(errors) if errors else None


class RankingBatchValidator(BaseValidator):
    """Validate a batch of ranking rows imported for one day or event"""

    def __init__(self):
        self.row_validator = RankingRowValidator()

    def validate(self, data: Dict) -> Tuple[bool, Optional[str]]:
        errors = []
        rows = data.get('rankings') or []
        if not rows:
            errors.append("No rankings to import")

        for i, row in enumerate(rows, start=1):
            is_valid, error = self.row_validator.validate(row)
            if not is_valid:
                errors.append(f"Row {i}: {error}")

        return len(errors) == 0, '; '.join(errors) if errors else None


class SpecialEventValidator(BaseValidator):
    """Validate special event fields"""

    def validate(self, data: Dict) -> Tuple[bool, Optional[str]]:
        errors = []

        if not str(data.get('name') or '').strip():
            errors.append("Missing required field: name")

        start = end = None
        for field in ['start_date', 'end_date']:
            try:
                value = to_date(data.get(field))
            except (ValueError, TypeError):
                errors.append(f"Invalid date format: {field} = {data.get(field)}")
                continue
            if field == 'start_date':
                start = value
            else:
                end = value
        if start and end and start > end:
            errors.append(f"Start date {start} is after end date {end}")

        weight = data.get('event_weight', SEASON_CONFIG['default_event_weight'])
        try:
            if float(weight) < 0:
                errors.append(f"Invalid event weight: {weight}")
        except (ValueError, TypeError):
            errors.append(f"Invalid event weight format: {weight}")

        return len(errors) == 0, '; '.join(errors) if errors else None


class KudosValidator(BaseValidator):
    """Validate a kudos award"""

    def validate(self, data: Dict) -> Tuple[bool, Optional[str]]:
        errors = []

        if not str(data.get('player_name') or '').strip():
            errors.append("Missing required field: player_name")

        points = data.get('points')
        low, high = SEASON_CONFIG['kudos_min_points'], SEASON_CONFIG['kudos_max_points']
        if isinstance(points, bool) or not isinstance(points, int):
            errors.append(f"Invalid points format: {points}")
        elif not low <= points <= high:
            errors.append(f"Points must be between {low} and {high}")

        try:
            to_date(data.get('date_awarded'))
        except (ValueError, TypeError):
            errors.append(f"Invalid date format: {data.get('date_awarded')}")

        return len(errors) == 0, '; '.join(errors) if errors else None
