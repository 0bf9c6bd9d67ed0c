"""Keep the OpenVPN DNS record pointed at the running appliance.

Invoked through SNS with EC2 Auto Scaling lifecycle notifications. On an
instance launch the instance's public address is written to the ``DNS_NAME``
A record in ``HOSTED_ZONE``; every other notification is only logged.
"""
import json
import logging
import os

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger("process_event")
logger.setLevel(logging.INFO)

LAUNCH_EVENT = "autoscaling:EC2_INSTANCE_LAUNCH"
TERMINATE_EVENT = "autoscaling:EC2_INSTANCE_TERMINATE"
TEST_EVENT = "autoscaling:TEST_NOTIFICATION"

LIVE_STATES = ("pending", "running")
RECORD_TTL = 60


class RemediationError(Exception):
    pass


def parse_notifications(event):
    """Decode the Auto Scaling messages carried by an SNS event."""
    notifications = []
    for record in event.get("Records", []):
        try:
            message = record["Sns"]["Message"]
            notification = json.loads(message)
        except (KeyError, TypeError, ValueError) as e:
            raise RemediationError(f"Malformed SNS record: {e}") from e
        if not isinstance(notification, dict):
            raise RemediationError(f"Unexpected notification payload: {message!r}")
        notifications.append(notification)
    return notifications


def describe_instance(ec2, instance_id):
    response = ec2.describe_instances(InstanceIds=[instance_id])
    for reservation in response.get("Reservations", []):
        for instance in reservation.get("Instances", []):
            if instance.get("InstanceId") == instance_id:
                return instance
    raise RemediationError(f"Instance {instance_id} not found")


def update_dns(route53, hosted_zone, dns_name, ip_address, instance_id):
    # UPSERT makes repeated and retried invocations harmless
    return route53.change_resource_record_sets(
        HostedZoneId=hosted_zone,
        ChangeBatch={
            "Comment": f"OpenVPN instance {instance_id}",
            "Changes": [
                {
                    "Action": "UPSERT",
                    "ResourceRecordSet": {
                        "Name": dns_name,
                        "Type": "A",
                        "TTL": RECORD_TTL,
                        "ResourceRecords": [{"Value": ip_address}],
                    },
                }
            ],
        },
    )


def handle_launch(instance_id, ec2, route53, hosted_zone, dns_name):
    instance = describe_instance(ec2, instance_id)
    state = instance.get("State", {}).get("Name")
    if state not in LIVE_STATES:
        # A newer instance has replaced this one; leave DNS to its own event
        logger.warning(f"Skipping stale launch of {instance_id} (state: {state})")
        return {"instance_id": instance_id, "action": "skipped", "state": state}

    ip_address = instance.get("PublicIpAddress")
    if not ip_address:
        raise RemediationError(f"Instance {instance_id} has no public IP address yet")

    # The appliance routes client traffic, so EC2 must not drop it
    ec2.modify_instance_attribute(InstanceId=instance_id, SourceDestCheck={"Value": False})
    logger.info(f"Disabled source/destination check on {instance_id}")

    update_dns(route53, hosted_zone, dns_name, ip_address, instance_id)
    logger.info(f"✅ {dns_name} -> {ip_address} ({instance_id})")
    return {"instance_id": instance_id, "action": "updated", "ip_address": ip_address}


def handle_notification(message, ec2, route53, hosted_zone, dns_name):
    event_type = message.get("Event")
    instance_id = message.get("EC2InstanceId")

    if event_type == TEST_EVENT:
        logger.info(f"Test notification for {message.get('AutoScalingGroupName')}")
        return {"event": event_type, "action": "ignored"}

    if event_type == LAUNCH_EVENT:
        if not instance_id:
            raise RemediationError("Launch notification without EC2InstanceId")
        result = handle_launch(instance_id, ec2, route53, hosted_zone, dns_name)
        result["event"] = event_type
        return result

    if event_type == TERMINATE_EVENT:
        logger.info(f"Instance {instance_id} terminated; DNS follows the replacement launch")
        return {"event": event_type, "instance_id": instance_id, "action": "ignored"}

    logger.warning(f"Unhandled notification {event_type}: {message.get('Description')}")
    return {"event": event_type, "instance_id": instance_id, "action": "ignored"}


def process_event(event, ec2, route53, hosted_zone, dns_name):
    results = []
    for message in parse_notifications(event):
        try:
            results.append(handle_notification(message, ec2, route53, hosted_zone, dns_name))
        except ClientError as e:
            logger.error(f"AWS call failed for {message.get('EC2InstanceId')}: {e}")
            raise
    return results


def lambda_handler(event, context):
    hosted_zone = os.environ["HOSTED_ZONE"]
    dns_name = os.environ["DNS_NAME"]
    ec2 = boto3.client("ec2")
    route53 = boto3.client("route53")
    return process_event(event, ec2, route53, hosted_zone, dns_name)
