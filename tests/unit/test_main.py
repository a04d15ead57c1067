"""Unit tests for main application entry point."""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

from restaurant_ordering_service.config import Settings
from src.main import create_application, create_payment_authority, get_dynamodb_resource


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    @patch("src.main.boto3.resource")
    def test_creates_aws_resource_when_no_endpoint(self, mock_boto3_resource: Mock) -> None:
        """Test that AWS DynamoDB resource is created when no local endpoint configured."""
        mock_resource = MagicMock()
        mock_boto3_resource.return_value = mock_resource

        result = get_dynamodb_resource(Settings(token_secret="x", aws_region="us-west-2"))

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="us-west-2")
        assert result == mock_resource

    @patch.dict(os.environ, {}, clear=True)
    @patch("src.main.boto3.resource")
    def test_creates_local_resource_when_endpoint_provided(self, mock_boto3_resource: Mock) -> None:
        """Test that local DynamoDB resource is created when endpoint configured."""
        settings = Settings(token_secret="x", dynamodb_endpoint="http://localhost:8000")

        get_dynamodb_resource(settings)

        mock_boto3_resource.assert_called_once_with(
            "dynamodb",
            endpoint_url="http://localhost:8000",
            region_name="us-east-1",
            aws_access_key_id="dummy",
            aws_secret_access_key="dummy",
        )


@pytest.mark.unit
class TestCreatePaymentAuthority:
    """Tests for create_payment_authority function."""

    def test_disabled_without_key(self) -> None:
        assert create_payment_authority(Settings(token_secret="x")) is None

    def test_created_with_key(self) -> None:
        authority = create_payment_authority(
            Settings(token_secret="x", stripe_secret_key="sk_test_123", payment_currency="eur")
        )

        assert authority is not None
        assert authority.currency == "eur"


@pytest.mark.unit
class TestCreateApplication:
    """Tests for create_application function."""

    @patch("src.main.setup_observability")
    @patch("src.main.configure_logging")
    @patch("src.main.get_dynamodb_resource")
    def test_creates_application_with_all_dependencies(
        self,
        mock_get_dynamodb: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        """Test that application is created with all dependencies properly wired."""
        mock_get_dynamodb.return_value = MagicMock()
        settings = Settings(
            token_secret="test-secret",
            use_transactions=False,
            log_level="DEBUG",
            environment="test",
        )

        app = create_application(settings)

        assert isinstance(app, FastAPI)
        mock_configure_logging.assert_called_once_with("DEBUG")
        mock_setup_observability.assert_called_once_with(app, environment="test")
        assert app.state.reconciler.use_transactions is False
        assert app.state.payment_authority is None
        assert app.state.store.users.key_name == "email"

    @patch.dict(os.environ, {"ENVIRONMENT": "test"}, clear=True)
    @patch("src.main.configure_logging")
    def test_requires_token_secret(self, mock_configure_logging: Mock) -> None:
        """Test that startup fails without a signing secret."""
        with pytest.raises(ValueError, match="ACCESS_TOKEN_SECRET"):
            create_application()
