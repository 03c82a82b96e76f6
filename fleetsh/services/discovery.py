"""EC2 target discovery by instance tags."""

import logging
from collections.abc import Iterable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fleetsh.config.settings import IP_TYPES
from fleetsh.errors import DiscoveryError
from fleetsh.models import Target

logger = logging.getLogger(__name__)

RUNNING_STATE_CODE = 16

_IP_FIELDS = {
    "public": "PublicIpAddress",
    "private": "PrivateIpAddress",
}


def parse_tags(tags: str) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas.

    Pairs without ``=`` are ignored.

    Examples:
        >>> parse_tags("Env=prod,Role=web")
        {'Env': 'prod', 'Role': 'web'}
    """
    tag_map: dict[str, str] = {}
    for pair in tags.split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            tag_map[key.strip()] = value.strip()
    return tag_map


def build_filters(tags: dict[str, str]) -> list[dict[str, Any]]:
    """Build EC2 DescribeInstances filters for tags and running state."""
    filters: list[dict[str, Any]] = [
        {"Name": f"tag:{key}", "Values": [value]} for key, value in tags.items()
    ]
    filters.append({"Name": "instance-state-name", "Values": ["running"]})
    return filters


def _instance_name(instance: dict[str, Any]) -> str | None:
    for tag in instance.get("Tags", []):
        if tag.get("Key") == "Name":
            return tag.get("Value") or None
    return None


def extract_targets(
    reservations: Iterable[dict[str, Any]],
    ip_type: str,
) -> dict[str, Target]:
    """Turn DescribeInstances reservations into targets.

    Args:
        reservations: ``Reservations`` entries from one or more responses
        ip_type: "public" or "private"

    Returns:
        Running instances that have an address of the requested class,
        keyed by instance id

    Raises:
        DiscoveryError: If ip_type is not a known address class
    """
    if ip_type not in IP_TYPES:
        raise DiscoveryError(f"ipType is invalid: {ip_type}")

    ip_field = _IP_FIELDS[ip_type]
    targets: dict[str, Target] = {}

    for reservation in reservations:
        for instance in reservation.get("Instances", []):
            if instance.get("State", {}).get("Code") != RUNNING_STATE_CODE:
                continue
            ip = instance.get(ip_field)
            if not ip:
                logger.debug("Skipping %s: no %s address", instance.get("InstanceId"), ip_type)
                continue
            instance_id = instance["InstanceId"]
            targets[instance_id] = Target(
                instance_id=instance_id,
                ip=ip,
                name=_instance_name(instance),
            )
    return targets


def discover_targets(
    tags: dict[str, str],
    ip_type: str,
    region: str | None = None,
    client: Any = None,
) -> dict[str, Target]:
    """Find running EC2 instances matching every tag.

    Args:
        tags: Tag filters; empty matches every running instance
        ip_type: "public" or "private"
        region: AWS region for the default client
        client: Pre-built EC2 client (used by tests)

    Returns:
        Targets keyed by instance id

    Raises:
        DiscoveryError: If the API call fails, ip_type is invalid, or
            nothing matches
    """
    if ip_type not in IP_TYPES:
        raise DiscoveryError(f"ipType is invalid: {ip_type}")

    try:
        if client is None:
            client = boto3.client("ec2", region_name=region)
        paginator = client.get_paginator("describe_instances")
        reservations = [
            reservation
            for page in paginator.paginate(Filters=build_filters(tags))
            for reservation in page.get("Reservations", [])
        ]
    except (BotoCoreError, ClientError) as e:
        raise DiscoveryError(f"unable to describe instances: {e}") from e

    targets = extract_targets(reservations, ip_type)
    if not targets:
        raise DiscoveryError("no targets found")

    logger.info("Discovered %d target(s) for tags %s", len(targets), tags)
    return targets
