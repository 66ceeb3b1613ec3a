"""Shared fixtures: a mocked versioned S3 bucket and seeded catalog data."""
import json

import boto3
import pytest
from moto import mock_aws

from catalog.catalog_store import CatalogStore
from storage.s3_document_store import S3DocumentStore

BUCKET_NAME = 'test-event-catalog'


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def s3_client(aws_credentials):
    """Create a mock versioned bucket for testing."""
    with mock_aws():
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket=BUCKET_NAME)
        s3.put_bucket_versioning(
            Bucket=BUCKET_NAME,
            VersioningConfiguration={'Status': 'Enabled'}
        )
        yield s3


@pytest.fixture
def put_document(s3_client):
    """Write a document behind the store's back, as another process would."""
    def put(key, value):
        body = value if isinstance(value, str) else json.dumps(value)
        s3_client.put_object(Bucket=BUCKET_NAME, Key=key, Body=body.encode('utf-8'))
    return put


@pytest.fixture
def read_document(s3_client):
    """Read a document straight from the bucket."""
    def read(key):
        response = s3_client.get_object(Bucket=BUCKET_NAME, Key=key)
        return json.loads(response['Body'].read().decode('utf-8'))
    return read


@pytest.fixture
def document_store(s3_client):
    return S3DocumentStore(BUCKET_NAME, region_name='us-east-1')


@pytest.fixture
def sample_centers():
    return {
        'x': {
            'id': 'x',
            'name': 'X Center',
            'address': '1 Main St',
            'country': 'US',
            'users': ['alice'],
            'fullcity': 'Springfield, United States',
        },
        'wroclaw': {
            'id': 'wroclaw',
            'name': 'Wroclaw Center',
            'address': 'ul. Rynek 1\nWroclaw',
            'country': 'PL',
            'users': ['bob'],
            'fullcity': 'Wroclaw, Poland',
        },
    }


@pytest.fixture
def sample_events():
    return [
        {
            'id': 1,
            'startDate': '2024-05-01',
            'title': 'Meditation evening',
            'center': 'x',
            'startTime': '19:00',
            'description': 'Weekly meditation',
        },
        {
            'id': 2,
            'startDate': '2024-05-10',
            'endDate': '2024-05-12',
            'title': 'Weekend course',
            'center': 'wroclaw',
            'startTime': '10:00',
            'description': 'Course',
            'name': 'Mountain retreat',
            'address': 'Karpacz',
        },
        {
            'id': 3,
            'startDate': '2024-04-28',
            'endDate': '2024-05-02',
            'title': 'Spring retreat',
            'center': 'x',
            'startTime': '09:00',
            'description': 'Retreat',
        },
        {
            'id': 4,
            'startDate': '2024-06-15',
            'title': 'Summer talk',
            'center': 'x',
            'startTime': '20:00',
            'description': 'Talk',
        },
    ]


@pytest.fixture
def seeded_store(document_store, put_document, sample_centers, sample_events):
    """Document store holding the sample centers and events, without an index."""
    for center_id, center in sample_centers.items():
        put_document(f"centers/{center_id}.json", center)
    for event in sample_events:
        put_document(f"current/{event['id']:06d}.json", event)
    return document_store


@pytest.fixture
def catalog(seeded_store):
    """Loaded catalog over the seeded store."""
    catalog = CatalogStore(seeded_store)
    catalog.load()
    return catalog
