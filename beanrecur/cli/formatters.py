"""Output formatting functions for CLI commands."""

import json

import click

from .. import constants


def print_groups_table(groups: list) -> None:
    """
    Print recurring groups as a formatted ASCII table.

    Shows label, projected amount, projected next date and member count for
    each group. The label column is capped for readability.

    Args:
        groups: List of RecurrenceGroup objects.
    """
    label_width = max(len("Label"), max((len(g.label) for g in groups), default=0))
    label_width = min(label_width, constants.MAX_LABEL_COLUMN_WIDTH)
    amount_width = max(len("Amount"), max((len(f"{g.projected_amount:.2f}") for g in groups), default=0))
    next_width = len("Next Expected")

    header = (
        f"{'Label':<{label_width}}  "
        f"{'Amount':>{amount_width}}  "
        f"{'Next Expected':<{next_width}}  "
        f"Count"
    )
    click.echo(header)
    click.echo("-" * len(header))

    for group in groups:
        label = group.label[:label_width]
        amount = f"{group.projected_amount:.2f}"
        next_date = group.projected_next_date.date().isoformat() if group.projected_next_date else "-"

        click.echo(
            f"{label:<{label_width}}  "
            f"{amount:>{amount_width}}  "
            f"{next_date:<{next_width}}  "
            f"{group.count}"
        )

    click.echo(f"\nTotal: {len(groups)} recurring groups")


def print_groups_json(groups: list) -> None:
    """Print recurring groups as the JSON response payload.

    Args:
        groups: List of RecurrenceGroup objects.
    """
    click.echo(json.dumps([g.to_dict() for g in groups], indent=2))
