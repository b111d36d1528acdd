# Overview: Pytest coverage for seller scoping of snapshot records.

from posfin.services.tenant_service import (
    UNKNOWN_OWNER_DENY,
    belongs_to_seller,
    collect_seller_identifiers,
    filter_by_seller,
    record_owner_ids,
)


class TestCollectSellerIdentifiers:
    def test_gathers_and_normalizes_every_source(self):
        ids = collect_seller_identifiers(
            auth_seller_id=" seller-a ",
            current_user={"id": 17, "uid": "u-1", "profile": {"sellerId": "seller-a"}},
            state_seller_id="seller-a",
            state_store_id="store-9",
        )
        assert ids == frozenset({"seller-a", "17", "u-1", "store-9"})

    def test_empty_sources_disable_scoping(self):
        assert collect_seller_identifiers(current_user=None) == frozenset()


class TestFilterBySeller:
    def test_no_identifiers_passes_everything(self):
        records = [{"sellerId": "x"}, {"sellerId": "y"}]
        assert filter_by_seller(records, frozenset()) == records

    def test_matching_owner_passes_foreign_owner_is_dropped(self):
        mine = {"sellerId": "seller-a"}
        theirs = {"sellerId": "seller-b"}
        assert filter_by_seller([mine, theirs], frozenset({"seller-a"})) == [mine]

    def test_nested_owner_paths_are_checked(self):
        record = {"createdBy": {"sellerId": "seller-a"}}
        assert record_owner_ids(record) == ["seller-a"]
        assert belongs_to_seller(record, frozenset({"seller-a"}))

    def test_any_populated_owner_field_may_match(self):
        record = {"sellerId": "seller-b", "storeId": "store-9"}
        assert belongs_to_seller(record, frozenset({"store-9"}))

    def test_unknown_owner_records_pass_by_default(self):
        legacy = {"_id": "old-order"}
        assert filter_by_seller([legacy], frozenset({"seller-a"})) == [legacy]

    def test_unknown_owner_policy_can_deny(self):
        legacy = {"_id": "old-order"}
        assert not belongs_to_seller(legacy, frozenset({"seller-a"}), unknown_owner_policy=UNKNOWN_OWNER_DENY)

    def test_match_is_case_sensitive(self):
        assert not belongs_to_seller({"sellerId": "Seller-A"}, frozenset({"seller-a"}))

    def test_input_is_not_mutated(self):
        records = [{"sellerId": "seller-a"}, {"sellerId": "seller-b"}]
        filter_by_seller(records, frozenset({"seller-a"}))
        assert len(records) == 2
