"""Tests for BankSlipBackfillService."""

import pytest

from asaas_sync.asaas import AsaasAuthenticationError, AsaasClient, RateLimitGovernor, RetryPolicy
from asaas_sync.db.repositories import InstallmentRepository
from asaas_sync.sync import BankSlipBackfillService, CommitManager
from tests.conftest import TEST_API_KEY, TEST_API_URL
from tests.factories import make_customer, make_installment
from tests.fixtures.asaas_responses import FakeAsaas, installment_payload

CARNET_URL = "https://sandbox.asaas.com/b/carnet/inst_1"


@pytest.fixture
def fake() -> FakeAsaas:
    fake = FakeAsaas()
    fake.add("installments", installment_payload("inst_1"), installment_payload("inst_2"))
    fake.bank_slips["inst_1"] = CARNET_URL
    return fake


@pytest.fixture
async def client(fake, rate_limit_config):
    async with AsaasClient(
        TEST_API_KEY,
        base_url=TEST_API_URL,
        governor=RateLimitGovernor(rate_limit_config),
        retry_policy=RetryPolicy(max_retries=0),
        transport=fake.transport(),
    ) as client:
        yield client


@pytest.fixture
def installments(db_session, write_lock) -> InstallmentRepository:
    return InstallmentRepository(db_session, write_lock)


@pytest.fixture
def service(client, installments, sync_config) -> BankSlipBackfillService:
    return BankSlipBackfillService(client, installments, config=sync_config)


class TestBackfill:
    """Tests for filling carnet URLs."""

    async def test_fills_missing_url(self, service, installments, db_session):
        make_customer(db_session)
        make_installment(db_session, id="inst_1")
        await db_session.flush()

        result = await service.run()

        assert result.candidates == 1
        assert result.filled == 1
        stored = await installments.get_by_id("inst_1")
        assert stored.bank_slip_url == CARNET_URL

    async def test_no_candidates(self, service, fake, db_session):
        make_customer(db_session)
        make_installment(db_session, id="inst_1", bank_slip_url=CARNET_URL)
        await db_session.flush()

        result = await service.run()

        assert result.candidates == 0
        assert fake.requests == []

    async def test_no_url_upstream_is_skipped(self, service, installments, db_session):
        make_customer(db_session)
        make_installment(db_session, id="inst_2")
        await db_session.flush()

        result = await service.run()

        assert result.filled == 0
        assert result.skipped == [("inst_2", "no bank slip upstream")]
        assert (await installments.get_by_id("inst_2")).bank_slip_url is None

    async def test_missing_upstream_is_skipped(self, service, db_session):
        make_customer(db_session)
        make_installment(db_session, id="inst_gone")
        await db_session.flush()

        result = await service.run()

        assert result.skipped == [("inst_gone", "not found upstream")]

    async def test_request_failure_is_reported(self, service, fake, db_session):
        fake.fail("/installments/inst_1", 502)
        make_customer(db_session)
        make_installment(db_session, id="inst_1")
        await db_session.flush()

        result = await service.run()

        assert result.filled == 0
        assert result.failures[0][0] == "inst_1"
        assert result.failures[0][1].startswith("AsaasTransportError")

    async def test_limit(self, service, fake, db_session):
        make_customer(db_session)
        make_installment(db_session, id="inst_1")
        make_installment(db_session, id="inst_2")
        await db_session.flush()

        result = await service.run(limit=1)

        assert result.candidates == 1
        assert len(fake.requests) == 1

    async def test_auth_error_propagates(self, service, fake, db_session):
        fake.fail("/installments/inst_1", 401)
        make_customer(db_session)
        make_installment(db_session, id="inst_1")
        await db_session.flush()

        with pytest.raises(AsaasAuthenticationError):
            await service.run()

    async def test_commits_filled_plans(
        self, client, installments, db_session, write_lock, sync_config
    ):
        commit_manager = CommitManager(db_session, write_lock, batch_size=10)
        service = BankSlipBackfillService(
            client, installments, config=sync_config, commit_manager=commit_manager
        )
        make_customer(db_session)
        make_installment(db_session, id="inst_1")
        make_installment(db_session, id="inst_2")
        await db_session.flush()

        result = await service.run()

        assert result.filled == 1
        assert commit_manager.total_committed == 1
        assert result.to_dict()["skipped"] == [
            {"installment_id": "inst_2", "reason": "no bank slip upstream"}
        ]
