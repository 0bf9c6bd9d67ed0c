"""Tests for the remediation Lambda handler."""

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

import process_event as handler

HOSTED_ZONE = "Z0123456789ABC"
DNS_NAME = "us-east-1.vpn.example.com"
INSTANCE_ID = "i-0abc123def4567890"


def sns_event(*messages):
    return {
        "Records": [
            {"EventSource": "aws:sns", "Sns": {"Message": json.dumps(message)}}
            for message in messages
        ]
    }


def notification(event_type, instance_id=INSTANCE_ID):
    return {
        "Event": event_type,
        "AutoScalingGroupName": "AsgStack-ASG46ED3070-1ABC",
        "EC2InstanceId": instance_id,
        "Description": f"{event_type} of {instance_id}",
    }


def ec2_client(state="running", public_ip="198.51.100.7"):
    instance = {"InstanceId": INSTANCE_ID, "State": {"Name": state}}
    if public_ip:
        instance["PublicIpAddress"] = public_ip
    ec2 = MagicMock()
    ec2.describe_instances.return_value = {"Reservations": [{"Instances": [instance]}]}
    return ec2


def run(event, ec2, route53=None):
    route53 = route53 or MagicMock()
    return handler.process_event(event, ec2, route53, HOSTED_ZONE, DNS_NAME), route53


def test_launch_points_dns_at_instance():
    ec2 = ec2_client()

    results, route53 = run(sns_event(notification(handler.LAUNCH_EVENT)), ec2)

    assert results == [{
        "event": handler.LAUNCH_EVENT,
        "instance_id": INSTANCE_ID,
        "action": "updated",
        "ip_address": "198.51.100.7",
    }]
    ec2.describe_instances.assert_called_once_with(InstanceIds=[INSTANCE_ID])
    ec2.modify_instance_attribute.assert_called_once_with(
        InstanceId=INSTANCE_ID, SourceDestCheck={"Value": False}
    )
    route53.change_resource_record_sets.assert_called_once()
    kwargs = route53.change_resource_record_sets.call_args.kwargs
    assert kwargs["HostedZoneId"] == HOSTED_ZONE
    change = kwargs["ChangeBatch"]["Changes"][0]
    assert change["Action"] == "UPSERT"
    assert change["ResourceRecordSet"] == {
        "Name": DNS_NAME,
        "Type": "A",
        "TTL": handler.RECORD_TTL,
        "ResourceRecords": [{"Value": "198.51.100.7"}],
    }


def test_stale_launch_leaves_dns_alone():
    ec2 = ec2_client(state="terminated", public_ip=None)

    results, route53 = run(sns_event(notification(handler.LAUNCH_EVENT)), ec2)

    assert results[0]["action"] == "skipped"
    assert results[0]["state"] == "terminated"
    ec2.modify_instance_attribute.assert_not_called()
    route53.change_resource_record_sets.assert_not_called()


def test_launch_without_public_ip_fails_for_retry():
    ec2 = ec2_client(state="pending", public_ip=None)

    with pytest.raises(handler.RemediationError):
        run(sns_event(notification(handler.LAUNCH_EVENT)), ec2)
    ec2.modify_instance_attribute.assert_not_called()


def test_unknown_instance_fails():
    ec2 = MagicMock()
    ec2.describe_instances.return_value = {"Reservations": []}

    with pytest.raises(handler.RemediationError):
        run(sns_event(notification(handler.LAUNCH_EVENT)), ec2)


@pytest.mark.parametrize("event_type", [
    handler.TERMINATE_EVENT,
    handler.TEST_EVENT,
    "autoscaling:EC2_INSTANCE_LAUNCH_ERROR",
])
def test_other_notifications_change_nothing(event_type):
    ec2 = ec2_client()

    results, route53 = run(sns_event(notification(event_type)), ec2)

    assert results[0]["action"] == "ignored"
    assert results[0]["event"] == event_type
    ec2.describe_instances.assert_not_called()
    route53.change_resource_record_sets.assert_not_called()


def test_each_record_is_handled():
    ec2 = ec2_client()
    event = sns_event(notification(handler.TERMINATE_EVENT, "i-0old"), notification(handler.LAUNCH_EVENT))

    results, route53 = run(event, ec2)

    assert [r["action"] for r in results] == ["ignored", "updated"]
    assert route53.change_resource_record_sets.call_count == 1


def test_aws_errors_propagate():
    ec2 = ec2_client()
    route53 = MagicMock()
    route53.change_resource_record_sets.side_effect = ClientError(
        {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
        "ChangeResourceRecordSets",
    )

    with pytest.raises(ClientError):
        run(sns_event(notification(handler.LAUNCH_EVENT)), ec2, route53)


@pytest.mark.parametrize("event", [
    {"Records": [{"Sns": {"Message": "not json"}}]},
    {"Records": [{"EventSource": "aws:sns"}]},
])
def test_malformed_records_fail(event):
    with pytest.raises(handler.RemediationError):
        run(event, MagicMock())


def test_launch_without_instance_id_fails():
    message = notification(handler.LAUNCH_EVENT)
    del message["EC2InstanceId"]

    with pytest.raises(handler.RemediationError):
        run(sns_event(message), MagicMock())


def test_lambda_handler_reads_environment(monkeypatch):
    monkeypatch.setenv("HOSTED_ZONE", HOSTED_ZONE)
    monkeypatch.setenv("DNS_NAME", DNS_NAME)
    clients = {"ec2": ec2_client(), "route53": MagicMock()}

    with patch.object(handler.boto3, "client", side_effect=clients.__getitem__):
        results = handler.lambda_handler(sns_event(notification(handler.LAUNCH_EVENT)), None)

    assert results[0]["action"] == "updated"
    kwargs = clients["route53"].change_resource_record_sets.call_args.kwargs
    assert kwargs["HostedZoneId"] == HOSTED_ZONE
    assert kwargs["ChangeBatch"]["Changes"][0]["ResourceRecordSet"]["Name"] == DNS_NAME
