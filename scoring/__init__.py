"""
Scoring - pure tournament score logic

- Tournament payload model and its validation rules
- Round append rules
- Score aggregation (round totals, grand totals, champion)

Nothing in this package touches the database or the web layer.
"""
