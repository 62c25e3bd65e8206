import copy

from protospec.compat import breaking_only, check_compatibility, has_breaking_changes
from protospec.decoder import decode_document
from protospec.models import IssueKind


def _doc(messages=None, enums=None, services=None):
    return decode_document({
        "syntax": "proto3",
        "package": "shop",
        "messages": messages or [],
        "enums": enums or [],
        "services": services or [],
    })


ORDER = {
    "name": "Order",
    "fields": [
        {"type": "string", "name": "id", "number": 1},
        {"type": "int64", "name": "total", "number": 2},
        {"type": "string", "name": "status", "number": 3},
    ],
}


def _kinds(issues):
    return [issue.kind for issue in issues]


class TestMessagesAndFields:
    def test_identical_documents_have_no_issues(self):
        doc = _doc(
            messages=[ORDER],
            enums=[{"name": "Status", "values": [{"name": "UNKNOWN", "number": 0}]}],
            services=[{"name": "Orders", "methods": [
                {"name": "Get", "inputType": "Order", "outputType": "Order"},
            ]}],
        )
        assert check_compatibility(doc, doc) == []

    def test_removed_field(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"] = target_order["fields"][:2]
        issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
        removed = [i for i in issues if i.kind == IssueKind.REMOVED_FIELD]
        assert len(removed) == 1
        issue = removed[0]
        assert issue.breaking is True
        assert "status" in issue.message
        assert "Order" in issue.message
        assert issue.message == "Field 'status' (3) was removed from message 'Order'"
        assert issue.location == "Order.status"

    def test_every_single_field_removal_is_breaking(self):
        for idx in range(len(ORDER["fields"])):
            target_order = copy.deepcopy(ORDER)
            del target_order["fields"][idx]
            issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
            assert any(i.kind == IssueKind.REMOVED_FIELD and i.breaking for i in issues)

    def test_removed_message_skips_field_comparison(self):
        issues = check_compatibility(_doc([ORDER]), _doc([]))
        assert _kinds(issues) == [IssueKind.REMOVED_MESSAGE]
        assert issues[0].breaking is True
        assert issues[0].message == "Message 'Order' was removed"

    def test_changed_field_type(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"][1]["type"] = "double"
        issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
        assert _kinds(issues) == [IssueKind.CHANGED_FIELD_TYPE]
        assert issues[0].breaking is True
        assert issues[0].message == "Field 'total' type changed from 'int64' to 'double' in message 'Order'"

    def test_match_is_by_number_not_name(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"][2]["name"] = "state"
        issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
        assert _kinds(issues) == [IssueKind.RENAMED_FIELD]
        assert issues[0].breaking is False

    def test_renumbered_field_is_removal_plus_addition(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"][2]["number"] = 4
        issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
        assert _kinds(issues) == [IssueKind.REMOVED_FIELD, IssueKind.ADDED_FIELD]
        assert [i.breaking for i in issues] == [True, False]

    def test_label_change_is_breaking(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"][0]["repeated"] = True
        issues = check_compatibility(_doc([ORDER]), _doc([target_order]))
        assert _kinds(issues) == [IssueKind.CHANGED_FIELD_LABEL]
        assert issues[0].breaking is True

    def test_additions_are_not_breaking(self):
        target_order = copy.deepcopy(ORDER)
        target_order["fields"].append({"type": "string", "name": "note", "number": 4})
        issues = check_compatibility(_doc([ORDER]), _doc([target_order, {"name": "Refund"}]))
        assert _kinds(issues) == [IssueKind.ADDED_FIELD, IssueKind.ADDED_MESSAGE]
        assert not has_breaking_changes(issues)
        assert breaking_only(issues) == []

    def test_nested_messages_are_compared(self):
        base = _doc([{"name": "Order", "nestedMessages": [
            {"name": "Line", "fields": [{"type": "int32", "name": "qty", "number": 1}]},
        ]}])
        target = _doc([{"name": "Order", "nestedMessages": [{"name": "Line"}]}])
        issues = check_compatibility(base, target)
        assert _kinds(issues) == [IssueKind.REMOVED_FIELD]
        assert issues[0].location == "Order.Line.qty"

    def test_children_of_removed_message_not_reported(self):
        base = _doc([{"name": "Order", "nestedMessages": [{"name": "Line"}]}])
        issues = check_compatibility(base, _doc([]))
        assert _kinds(issues) == [IssueKind.REMOVED_MESSAGE]

    def test_children_of_added_message_not_reported(self):
        target = _doc([{
            "name": "Order",
            "nestedMessages": [{"name": "Line"}],
            "nestedEnums": [{"name": "Kind", "values": [{"name": "K", "number": 0}]}],
        }])
        issues = check_compatibility(_doc([]), target)
        assert _kinds(issues) == [IssueKind.ADDED_MESSAGE]


class TestEnums:
    BASE = {"name": "Status", "values": [
        {"name": "UNKNOWN", "number": 0},
        {"name": "PAID", "number": 1},
    ]}

    def test_removed_enum(self):
        issues = check_compatibility(_doc(enums=[self.BASE]), _doc())
        assert _kinds(issues) == [IssueKind.REMOVED_ENUM]
        assert issues[0].breaking is True

    def test_removed_value(self):
        target = {"name": "Status", "values": [{"name": "UNKNOWN", "number": 0}]}
        issues = check_compatibility(_doc(enums=[self.BASE]), _doc(enums=[target]))
        assert _kinds(issues) == [IssueKind.REMOVED_ENUM_VALUE]
        assert issues[0].breaking is True

    def test_renamed_and_added_values(self):
        target = {"name": "Status", "values": [
            {"name": "STATUS_UNKNOWN", "number": 0},
            {"name": "PAID", "number": 1},
            {"name": "REFUNDED", "number": 2},
        ]}
        issues = check_compatibility(_doc(enums=[self.BASE]), _doc(enums=[target]))
        assert _kinds(issues) == [IssueKind.RENAMED_ENUM_VALUE, IssueKind.ADDED_ENUM_VALUE]
        assert not has_breaking_changes(issues)

    def test_nested_enum_of_removed_message_not_reported(self):
        base = _doc([{"name": "Order", "nestedEnums": [self.BASE]}])
        assert _kinds(check_compatibility(base, _doc())) == [IssueKind.REMOVED_MESSAGE]

    def test_nested_enum_removed(self):
        base = _doc([{"name": "Order", "nestedEnums": [self.BASE]}])
        target = _doc([{"name": "Order"}])
        issues = check_compatibility(base, target)
        assert _kinds(issues) == [IssueKind.REMOVED_ENUM]
        assert issues[0].location == "Order.Status"


class TestServices:
    BASE = {"name": "Orders", "methods": [
        {"name": "Get", "inputType": "GetReq", "outputType": "Order"},
        {"name": "Watch", "inputType": "WatchReq", "outputType": "Order", "streaming": {"output": True}},
    ]}

    def test_removed_service(self):
        issues = check_compatibility(_doc(services=[self.BASE]), _doc())
        assert _kinds(issues) == [IssueKind.REMOVED_SERVICE]

    def test_method_changes(self):
        target = {"name": "Orders", "methods": [
            {"name": "Get", "inputType": "GetReq", "outputType": "OrderView"},
            {"name": "Watch", "inputType": "WatchReq", "outputType": "Order"},
            {"name": "List", "inputType": "ListReq", "outputType": "ListResp"},
        ]}
        issues = check_compatibility(_doc(services=[self.BASE]), _doc(services=[target]))
        assert _kinds(issues) == [
            IssueKind.CHANGED_METHOD_TYPE,
            IssueKind.CHANGED_METHOD_STREAMING,
            IssueKind.ADDED_METHOD,
        ]
        assert [i.breaking for i in issues] == [True, True, False]

    def test_removed_method(self):
        target = {"name": "Orders", "methods": [self.BASE["methods"][0]]}
        issues = check_compatibility(_doc(services=[self.BASE]), _doc(services=[target]))
        assert _kinds(issues) == [IssueKind.REMOVED_METHOD]
        assert issues[0].location == "Orders.Watch"


class TestOrderingAndPurity:
    def test_groups_in_order(self):
        base = _doc(
            messages=[ORDER],
            enums=[{"name": "E", "values": [{"name": "Z", "number": 0}]}],
            services=[{"name": "S"}],
        )
        issues = check_compatibility(base, _doc())
        assert _kinds(issues) == [
            IssueKind.REMOVED_MESSAGE,
            IssueKind.REMOVED_ENUM,
            IssueKind.REMOVED_SERVICE,
        ]

    def test_repeated_numbers_compare_clean_against_themselves(self):
        doc = _doc(
            messages=[{"name": "A", "fields": [
                {"type": "string", "name": "a", "number": 1},
                {"type": "string", "name": "b", "number": 1},
            ]}],
            enums=[{"name": "E", "values": [
                {"name": "ZERO", "number": 0},
                {"name": "NONE", "number": 0},
            ]}],
        )
        assert check_compatibility(doc, doc) == []

    def test_dropped_alias_is_reported_once(self):
        base = _doc(enums=[{"name": "E", "values": [
            {"name": "ZERO", "number": 0},
            {"name": "NONE", "number": 0},
        ]}])
        target = _doc(enums=[{"name": "E", "values": [{"name": "ZERO", "number": 0}]}])
        issues = check_compatibility(base, target)
        assert _kinds(issues) == [IssueKind.REMOVED_ENUM_VALUE]
        assert issues[0].location == "E.NONE"

    def test_inputs_not_mutated(self):
        base = _doc([ORDER])
        target = _doc([{"name": "Order"}])
        base_copy = copy.deepcopy(base)
        target_copy = copy.deepcopy(target)
        check_compatibility(base, target)
        assert base == base_copy
        assert target == target_copy
