"""
Management commands for inspecting and maintaining feature configuration
"""
import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from .services.feature_toggles import (
    FeatureToggleError,
    get_feature_reporter,
    get_toggle_service,
    normalize_facility_id,
)
from .services.feature_toggles.persistence import read_snapshot_file, write_snapshot_file


@click.group('features')
def features_cli():
    """Feature toggle maintenance commands"""


@features_cli.command('list')
@click.option('--facility', default=None, help='Facility id (defaults to the global scope)')
@with_appcontext
def list_features_command(facility):
    """List every feature and whether it is enabled"""
    facility_id = normalize_facility_id(facility)
    service = get_toggle_service()
    config = service.config_for(facility_id)

    print(f"📋 Features for {facility_id or 'global'}:")
    for definition in service.registry:
        marker = "✅" if config.get(definition.id) else "⬜"
        scope = "" if definition.scope.facility_level else " (system only)"
        print(f"  {marker} {definition.id} [{definition.category.value}]{scope}")

    summary = get_feature_reporter().summary(facility_id)
    print(f"ℹ️  {summary['enabled']}/{summary['total']} enabled ({summary['percentage']}%)")


@features_cli.command('validate')
@click.option('--facility', default=None, help='Facility id to validate')
@click.option('--all-facilities', is_flag=True, help='Validate global and every known facility')
@with_appcontext
def validate_command(facility, all_facilities):
    """Report dependency issues; exits non-zero when any are found"""
    reporter = get_feature_reporter()
    if all_facilities:
        scopes = [None] + reporter.known_facilities()
    else:
        scopes = [normalize_facility_id(facility)]

    problems = 0
    for facility_id in scopes:
        issues = reporter.dependency_issues(facility_id)
        label = facility_id or 'global'
        if not issues:
            print(f"✅ {label}: no dependency issues")
            continue
        problems += len(issues)
        print(f"❌ {label}: {len(issues)} dependency issue(s)")
        for issue in issues:
            print(f"   - {issue['feature']} requires {issue['missing_dependency']}")

    if problems:
        sys.exit(1)


@features_cli.command('export')
@click.argument('path', type=click.Path(dir_okay=False))
@with_appcontext
def export_command(path):
    """Write the full configuration snapshot to PATH"""
    snapshot = get_feature_reporter().export_snapshot()
    write_snapshot_file(path, snapshot)
    print(f"✅ Exported global config and {len(snapshot['facilities'])} facilities to {path}")


@features_cli.command('import')
@click.argument('path', type=click.Path(dir_okay=False))
@with_appcontext
def import_command(path):
    """Load a full configuration snapshot from PATH (no dependency validation)"""
    try:
        data = read_snapshot_file(path)
        if data is None:
            print(f"❌ Snapshot file not found: {path}")
            sys.exit(1)
        reporter = get_feature_reporter()
        reporter.import_snapshot(data)
    except FeatureToggleError as e:
        print(f"❌ Snapshot import failed: {e}")
        sys.exit(1)

    print(f"✅ Imported snapshot from {path}")
    print("⚠️  Snapshots are trusted input; dependency rules were not checked")
    issues = reporter.dependency_issues(None)
    if issues:
        print(f"⚠️  Global scope has {len(issues)} dependency issue(s); run 'flask features validate'")


@features_cli.command('reset')
@click.option('--facility', default=None, help='Facility id to reset (omit to reset global defaults)')
@click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
@with_appcontext
def reset_command(facility, yes):
    """Reset a facility's overrides, or the global layer to catalog defaults"""
    facility_id = normalize_facility_id(facility)
    service = get_toggle_service()
    label = facility_id or 'global'
    if not yes and not current_app.config.get('TESTING'):
        click.confirm(f"Reset feature configuration for {label}?", abort=True)

    if facility_id is None:
        result = service.reset_global()
    else:
        result = service.reset_facility(facility_id)
    print(f"🔄 Reset {label}: {len(result.applied)} value(s) restored to defaults")


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(features_cli)
