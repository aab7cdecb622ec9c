"""Tests for KubernetesStore against a mocked dynamic client."""

from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from infsched.errors import (
    ConflictError,
    NoKindMatchError,
    NotFoundError,
    PermanentStoreError,
    TransientStoreError,
)
from infsched.schemas import kinds
from infsched.store.kubernetes import KubernetesStore


def result(data):
    wrapped = MagicMock()
    wrapped.to_dict.return_value = data
    return wrapped


def api_error(status, reason="Error"):
    error = ApiException(status=status, reason=reason)
    error.body = ""
    return error


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def dynamic_client(api):
    client = MagicMock()
    client.resources.get.return_value = api
    return client


@pytest.fixture
def k8s(dynamic_client):
    return KubernetesStore(dynamic_client, request_timeout=5)


class TestCalls:
    """Tests for request construction."""

    def test_get(self, k8s, dynamic_client, api):
        api.get.return_value = result({"metadata": {"name": "a"}})
        assert k8s.get(kinds.DEPLOYMENT, "ns", "a") == {"metadata": {"name": "a"}}
        dynamic_client.resources.get.assert_called_with(api_version="apps/v1", kind="Deployment")
        api.get.assert_called_once_with(name="a", namespace="ns", _request_timeout=5)

    def test_create(self, k8s, api):
        obj = {"metadata": {"name": "a", "namespace": "ns"}}
        api.create.return_value = result(obj)
        k8s.create(kinds.CONFIG_MAP, obj)
        api.create.assert_called_once_with(body=obj, namespace="ns", _request_timeout=5)

    def test_update(self, k8s, api):
        obj = {"metadata": {"name": "a", "namespace": "ns", "resourceVersion": "3"}}
        api.replace.return_value = result(obj)
        k8s.update(kinds.CONFIG_MAP, obj)
        api.replace.assert_called_once_with(body=obj, name="a", namespace="ns", _request_timeout=5)

    def test_update_status(self, k8s, api):
        obj = {"metadata": {"name": "a", "namespace": "ns"}, "status": {"phase": "Ready"}}
        api.status.replace.return_value = result(obj)
        k8s.update_status(kinds.INFERENCE_SCHEDULER, obj)
        api.status.replace.assert_called_once_with(body=obj, name="a", namespace="ns", _request_timeout=5)

    def test_delete(self, k8s, api):
        k8s.delete(kinds.SERVICE, "ns", "a")
        api.delete.assert_called_once_with(name="a", namespace="ns", _request_timeout=5)

    def test_list_with_limit(self, k8s, api):
        api.get.return_value = result({"items": [{"metadata": {"name": "a"}}]})
        assert k8s.list(kinds.GATEWAY, limit=1) == [{"metadata": {"name": "a"}}]
        api.get.assert_called_once_with(_request_timeout=5, limit=1)

    def test_list_cluster_scoped_ignores_namespace(self, k8s, api):
        api.get.return_value = result({"items": []})
        k8s.list(kinds.GATEWAY_CLASS, namespace="ns")
        api.get.assert_called_once_with(_request_timeout=5)

    def test_get_root(self, k8s, api):
        api.get.return_value = result({
            "metadata": {"name": "llama", "namespace": "llm", "uid": "u", "resourceVersion": "9"},
            "spec": {},
        })
        root = k8s.get_root("llm", "llama")
        assert root.uid == "u"
        assert root.resource_version == "9"


class TestErrors:
    """Tests for error translation."""

    def test_unknown_kind(self, k8s, dynamic_client):
        dynamic_client.resources.get.side_effect = ResourceNotFoundError("no match")
        with pytest.raises(NoKindMatchError):
            k8s.list(kinds.INFERENCE_POOL, limit=1)

    @pytest.mark.parametrize("status,expected", [
        (404, NotFoundError),
        (409, ConflictError),
        (429, TransientStoreError),
        (503, TransientStoreError),
        (403, PermanentStoreError),
        (422, PermanentStoreError),
    ])
    def test_api_errors(self, k8s, api, status, expected):
        api.get.side_effect = api_error(status)
        with pytest.raises(expected):
            k8s.get(kinds.DEPLOYMENT, "ns", "a")

    def test_connection_error_is_transient(self, k8s, api):
        api.get.side_effect = urllib3.exceptions.ProtocolError("connection reset")
        with pytest.raises(TransientStoreError):
            k8s.get(kinds.DEPLOYMENT, "ns", "a")
