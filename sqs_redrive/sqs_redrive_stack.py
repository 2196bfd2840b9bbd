import os

from aws_cdk import CfnOutput, Duration, Stack
from aws_cdk import (
    aws_apigateway as apigw,
)
from aws_cdk import (
    aws_cloudwatch as cloudwatch,
)
from aws_cdk import (
    aws_cloudwatch_actions as actions,
)
from aws_cdk import (
    aws_events as events,
)
from aws_cdk import (
    aws_events_targets as targets,
)
from aws_cdk import (
    aws_lambda as _lambda,
)
from aws_cdk import (
    aws_sns as sns,
)
from aws_cdk import (
    aws_sqs as sqs,
)
from aws_cdk.aws_lambda_python_alpha import PythonFunction
from constructs import Construct


class SqsRedriveStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Read optional settings from environment variables
        notification_email_value = os.environ.get("NOTIFICATION_EMAIL")
        schedule_hours_value = os.environ.get("REDRIVE_SCHEDULE_HOURS")
        max_messages_value = os.environ.get("MAX_MESSAGES", "10")
        log_level_value = os.environ.get("LOG_LEVEL", "INFO")

        # Create SNS topic for notifications (only if email is provided)
        notification_topic = None
        if notification_email_value:
            notification_topic = sns.Topic(
                self,
                "RedriveNotificationTopic",
                display_name="SQS Redrive Notifications",
            )

            # Subscribe email to SNS topic
            sns.Subscription(
                self,
                "EmailSubscription",
                endpoint=notification_email_value,
                protocol=sns.SubscriptionProtocol.EMAIL,
                topic=notification_topic,
            )

        # Dead-letter queue that failed messages land in
        dlq = sqs.Queue(
            self,
            "DeadLetterQueue",
            retention_period=Duration.days(14),
        )

        # Main queue, redriven into from the DLQ
        queue = sqs.Queue(
            self,
            "MainQueue",
            visibility_timeout=Duration.seconds(300),
            retention_period=Duration.days(14),
            dead_letter_queue=sqs.DeadLetterQueue(
                max_receive_count=5,
                queue=dlq,
            ),
        )

        redrive_environment = {
            "DLQ_URL": dlq.queue_url,
            "MAIN_QUEUE_URL": queue.queue_url,
            "MAX_MESSAGES": max_messages_value,
            "LOG_LEVEL": log_level_value,
        }

        # API Lambda function (list DLQ, bulk and selective redrive)
        api_lambda = PythonFunction(
            self,
            "RedriveApiFunction",
            entry="lambda/redrive",
            handler="handler",
            runtime=_lambda.Runtime.PYTHON_3_14,
            index="redrive_api.py",
            environment=redrive_environment,
            timeout=Duration.seconds(29),
        )

        # Bulk redrive Lambda function (manual invoke or schedule)
        dlq_redrive_lambda = PythonFunction(
            self,
            "DlqRedriveFunction",
            entry="lambda/redrive",
            handler="handler",
            runtime=_lambda.Runtime.PYTHON_3_14,
            index="dlq_redrive.py",
            environment=redrive_environment,
            timeout=Duration.minutes(5),
        )

        # Grant SQS permissions
        for redrive_function in (api_lambda, dlq_redrive_lambda):
            dlq.grant_consume_messages(redrive_function)
            queue.grant_send_messages(redrive_function)

        # Create API Gateway endpoint
        api = apigw.RestApi(
            self,
            "RedriveApi",
            rest_api_name="SQS Redrive Service",
            description="This service redrives messages from the DLQ to the main queue.",
        )

        api_integration = apigw.LambdaIntegration(api_lambda)
        api.root.add_resource("dlq").add_resource("messages").add_method(
            "GET", api_integration
        )
        redrive_resource = api.root.add_resource("redrive")
        redrive_resource.add_method("POST", api_integration)
        redrive_resource.add_resource("selective").add_method("POST", api_integration)

        # Optionally redrive on a schedule
        if schedule_hours_value:
            redrive_rule = events.Rule(
                self,
                "ScheduledRedriveRule",
                schedule=events.Schedule.rate(
                    Duration.hours(int(schedule_hours_value))
                ),
                description=f"Trigger DLQ redrive every {schedule_hours_value} hours",
            )
            redrive_rule.add_target(targets.LambdaFunction(dlq_redrive_lambda))

        CfnOutput(self, "DeadLetterQueueUrl", value=dlq.queue_url)
        CfnOutput(self, "MainQueueUrl", value=queue.queue_url)

        # Create CloudWatch Alarms for Lambda monitoring (only if notification topic exists)
        if notification_topic:
            self._create_lambda_alarms(
                api_lambda, "RedriveApi", notification_topic, Duration.seconds(23)
            )
            self._create_lambda_alarms(
                dlq_redrive_lambda,
                "DlqRedrive",
                notification_topic,
                Duration.minutes(4),
            )

            # DLQ alarm for failed messages
            dlq_alarm = cloudwatch.Alarm(
                self,
                "DLQAlarm",
                alarm_name="Dead Letter Queue Messages",
                alarm_description="Alarm when the DLQ has messages waiting to be redriven",
                metric=cloudwatch.Metric(
                    namespace="AWS/SQS",
                    metric_name="ApproximateNumberOfMessagesVisible",
                    dimensions_map={"QueueName": dlq.queue_name},
                    statistic="Maximum",
                ),
                threshold=1,
                evaluation_periods=1,
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
            )
            dlq_alarm.add_alarm_action(actions.SnsAction(notification_topic))
            dlq_alarm.add_ok_action(actions.SnsAction(notification_topic))

    def _create_lambda_alarms(
        self,
        lambda_function: _lambda.Function,
        function_name: str,
        notification_topic: sns.Topic,
        duration_threshold: Duration,
    ) -> None:
        """Create CloudWatch alarms for a Lambda function."""

        # Error rate alarm
        error_alarm = cloudwatch.Alarm(
            self,
            f"{function_name}ErrorAlarm",
            alarm_name=f"{function_name} Lambda Errors",
            alarm_description=f"Alarm when {function_name} Lambda has errors",
            metric=lambda_function.metric_errors(),
            threshold=1,
            evaluation_periods=1,
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
        )
        error_alarm.add_alarm_action(actions.SnsAction(notification_topic))
        error_alarm.add_ok_action(actions.SnsAction(notification_topic))

        # Duration alarm (80% of timeout)
        duration_alarm = cloudwatch.Alarm(
            self,
            f"{function_name}DurationAlarm",
            alarm_name=f"{function_name} Lambda Duration",
            alarm_description=f"Alarm when {function_name} Lambda duration exceeds threshold",
            metric=lambda_function.metric_duration(),
            threshold=duration_threshold.to_milliseconds(),
            evaluation_periods=1,
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
        )
        duration_alarm.add_alarm_action(actions.SnsAction(notification_topic))
        duration_alarm.add_ok_action(actions.SnsAction(notification_topic))
