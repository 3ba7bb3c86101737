import json
import logging

from serverless_wsgi import handle_request

logger = logging.getLogger(__name__)


def handler(event, context):
    """WSGI handler for API Gateway binary responses"""
    try:
        from publish_ats.api import application

        return handle_request(application, event, context)
    except Exception as e:
        logger.exception(f"ERROR: {str(e)}")
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({"error": str(e)}),
        }
