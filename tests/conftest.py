"""Shared test fixtures for baitulmal."""

import os
import tempfile

import pytest

from baitulmal.aid.models import Applicant, BankDetails, Deceased
from baitulmal.khairat.beneficiaries import Beneficiary


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "nisab": {
            "harta": {"threshold": 20000},
        },
        "funds": {
            "khairat": {"target": 100000},
        },
        "khairat": {
            "benefit_schedule": {"family": 8000},
        },
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def applicant():
    return Applicant(name="Siti Aminah", identity_number="800101-14-5678", phone="012-3456789")


@pytest.fixture
def bank_details():
    return BankDetails(account_name="Siti Aminah", account_number="1234567890", bank_name="Maybank")


@pytest.fixture
def deceased():
    return Deceased(member_id="M001", name="Ahmad bin Ali", identity_number="500505-10-1111", date_of_death="2025-03-01")


@pytest.fixture
def zakat_documents():
    return ["applicant_ic", "income_statement"]


@pytest.fixture
def khairat_documents():
    return ["death_certificate", "hospital_confirmation", "applicant_ic", "deceased_ic", "bank_statement"]


@pytest.fixture
def family_beneficiaries():
    """A complete 60/25/15 set with one primary."""
    return [
        Beneficiary("B1", "Fatimah", 60, is_primary=True, relationship="spouse"),
        Beneficiary("B2", "Hassan", 25, relationship="son"),
        Beneficiary("B3", "Aisyah", 15, relationship="daughter"),
    ]
