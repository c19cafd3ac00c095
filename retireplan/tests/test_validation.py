from __future__ import annotations

from retireplan.domain.validation import validate
from retireplan.models import PlanInput


def fields(result) -> set:
    return {issue.field for issue in result.errors}


def test_valid_plan(make_plan, salary):
    result = validate(make_plan(incomeSources=[salary()]))

    assert result.isValid
    assert result.errors == []


def test_accepts_parsed_plan(make_plan):
    assert validate(PlanInput.model_validate(make_plan())).isValid


def test_collects_every_profile_problem(make_plan):
    result = validate(make_plan(currentAge=10, retirementAge=5, inflationRate=0.5, expectedReturnRate=-0.1))

    assert not result.isValid
    assert {"currentAge", "retirementAge", "inflationRate", "expectedReturnRate"} <= fields(result)


def test_retirement_must_follow_current_age(make_plan):
    result = validate(make_plan(currentAge=50, retirementAge=50))
    assert fields(result) == {"retirementAge"}


def test_soft_limits(make_plan):
    result = validate(make_plan(monthlyContribution=60000, currentSavings=200_000_000))

    messages = {issue.field: issue.message for issue in result.errors}
    assert messages["monthlyContribution"] == "is unrealistically high"
    assert messages["currentSavings"] == "is unrealistically high"


def test_negative_money_fields(make_plan):
    result = validate(make_plan(currentSavings=-1, monthlyContribution=-5, monthlyRetirementSpending=-10))
    assert {"currentSavings", "monthlyContribution", "monthlyRetirementSpending"} <= fields(result)


def test_nested_income_errors_are_located(make_plan, salary):
    sources = [
        salary(),
        salary(0, id="s2", name="Rental", type="rental"),
        salary(id="s3", name="Contract", type="fixed-period", startDate="2025-01"),
        salary(id="s4", name="Gig", frequency="custom"),
        salary(id="s5", name="Bonus", type="one-time", frequency="one-time"),
        salary(id="s6", name="Raise", annualIncrease=0.5, contributionPercentage=2),
        salary(id="s7", name="Dates", startDate="2026-05", endDate="2026-01"),
    ]
    result = validate(make_plan(incomeSources=sources))

    assert fields(result) == {
        "incomeSources[1].amount",
        "incomeSources[2].endDate",
        "incomeSources[3].customFrequencyDays",
        "incomeSources[4].startDate",
        "incomeSources[5].annualIncrease",
        "incomeSources[5].contributionPercentage",
        "incomeSources[6].endDate",
    }


def test_duplicate_ids_and_names(make_plan, salary):
    sources = [salary(), salary(id="salary", name="Other"), salary(id="s3", name="  SALARY ")]
    result = validate(make_plan(incomeSources=sources))

    assert fields(result) == {"incomeSources[1].id", "incomeSources[2].name"}


def test_malformed_dates_are_reported_not_raised(make_plan, salary):
    result = validate(make_plan(incomeSources=[salary(startDate="Invalid Date")], projectionStart="soon"))
    assert fields(result) == {"incomeSources[0].startDate", "projectionStart"}


def test_one_off_returns(make_plan):
    returns = [
        {"id": "r1", "date": "2025-13", "amount": 0, "description": " "},
        {"id": "r2", "date": "2025-05", "amount": -400, "description": "Loss"},
    ]
    result = validate(make_plan(oneOffReturns=returns))

    assert fields(result) == {"oneOffReturns[0].date", "oneOffReturns[0].amount", "oneOffReturns[0].description"}


def test_expenses(make_plan):
    expenses = [
        {"id": "e1", "name": "", "monthlyAmount": -1, "inflationRate": 2},
        {"id": "e2", "name": "Care", "monthlyAmount": 100, "startAge": 80, "endAge": 70},
    ]
    result = validate(make_plan(expenses=expenses))

    assert fields(result) == {
        "expenses[0].name",
        "expenses[0].monthlyAmount",
        "expenses[0].inflationRate",
        "expenses[1].endAge",
    }


def test_loans(make_plan):
    loans = [
        {
            "id": "l1",
            "name": "Home",
            "principal": 0,
            "interestRate": 0.7,
            "termMonths": 700,
            "startDate": "someday",
            "cpfPercentage": 150,
            "extraPayments": [{"date": "2025-02", "amount": -5}],
        }
    ]
    result = validate(make_plan(loans=loans))

    assert fields(result) == {
        "loans[0].principal",
        "loans[0].interestRate",
        "loans[0].termMonths",
        "loans[0].startDate",
        "loans[0].cpfPercentage",
        "loans[0].extraPayments[0].amount",
    }


def test_one_time_expenses(make_plan):
    items = [{"id": "o1", "name": "Trip", "amount": 0, "date": "2025-02"}]
    assert fields(validate(make_plan(oneTimeExpenses=items))) == {"oneTimeExpenses[0].amount"}


def test_cpf_settings(make_plan, salary):
    cpf = {
        "enabled": True,
        "currentBalances": {"ordinaryAccount": -1, "retirementAccount": 5000},
        "lifePayoutAge": 72,
    }
    result = validate(make_plan(incomeSources=[salary()], cpf=cpf))

    assert fields(result) == {
        "cpf.currentBalances.ordinaryAccount",
        "cpf.currentBalances.retirementAccount",
        "cpf.enabled",
        "cpf.lifePayoutAge",
    }


def test_disabled_cpf_is_not_checked(make_plan):
    cpf = {"enabled": False, "currentBalances": {"ordinaryAccount": -1}}
    assert validate(make_plan(cpf=cpf)).isValid


def test_withdrawal_config(make_plan):
    config = {"strategy": "combined", "percentage": 1.5}
    result = validate(make_plan(withdrawalConfig=config))

    assert fields(result) == {"withdrawalConfig.fixedAmount", "withdrawalConfig.percentage"}


def test_max_age_not_before_retirement(make_plan):
    assert fields(validate(make_plan(maxAge=33))) == {"maxAge"}


def test_structural_errors_become_issues(make_plan):
    result = validate(make_plan(currentAge="old", incomeSources=[{"id": "x"}], surprise=True))

    assert not result.isValid
    located = fields(result)
    assert "currentAge" in located
    assert "surprise" in located
    assert any(field.startswith("incomeSources[0].") for field in located)
