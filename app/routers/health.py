"""
Health Check Router
Liveness plus a status report on the AWS services the API depends on
"""
from fastapi import APIRouter, Request
from datetime import datetime
import logging
from botocore.exceptions import BotoCoreError, ClientError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": request.app.state.settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def aws_services_status(request: Request):
    """
    Check connectivity of:
    - DynamoDB (users and ledger tables)
    - S3 (profile images bucket)
    """
    settings = request.app.state.settings
    status = {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {}
    }

    dynamodb_status = {
        "connected": False,
        "region": settings.DYNAMO_REGION,
        "tables": {},
    }
    for label, name in (("users", settings.DYNAMO_USERS_TABLE), ("ledger", settings.DYNAMO_LEDGER_TABLE)):
        try:
            request.app.state.dynamodb.Table(name).load()
            dynamodb_status["tables"][label] = {"name": name, "status": "accessible"}
        except (BotoCoreError, ClientError) as e:
            logger.error(f"DynamoDB check failed for {name}: {str(e)}")
            dynamodb_status["tables"][label] = {"name": name, "status": "error", "error": str(e)}

    dynamodb_status["connected"] = all(
        table["status"] == "accessible" for table in dynamodb_status["tables"].values()
    )
    status["services"]["dynamodb"] = dynamodb_status

    s3_status = {
        "connected": False,
        "bucket": settings.S3_BUCKET_NAME,
        "region": settings.S3_REGION,
        "error": None
    }
    try:
        request.app.state.image_storage.check()
        s3_status["connected"] = True
        s3_status["status"] = "accessible"
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        s3_status["error"] = f"{error_code}: {str(e)}"
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")
    except BotoCoreError as e:
        s3_status["error"] = str(e)
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")

    status["services"]["s3"] = s3_status

    all_connected = all(
        service.get("connected", False)
        for service in status["services"].values()
    )
    status["overall_status"] = "healthy" if all_connected else "degraded"

    return status
