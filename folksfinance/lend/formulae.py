"""
Lending v2 pool and loan formulae.

Dollar values are 4dp, prices are 14dp (USD per smallest asset unit), factors are 4dp,
rates and ratios are 16dp, interest indexes are 14dp, and amounts are 0dp.
"""

from folksfinance.math.fixed_point import (
    ONE_10_DP,
    ONE_14_DP,
    ONE_16_DP,
    ONE_4_DP,
    div_scale,
    div_scale_round_up,
    mul_scale,
    mul_scale_round_up,
)


def calc_asset_dollar_value(amount: int, price: int) -> int:
    """
    :param amount: 0dp
    :param price: 14dp
    :return: value (0dp)
    """
    return mul_scale_round_up(amount, price, ONE_14_DP)


def calc_total_debt(total_var_debt: int, total_stbl_debt: int) -> int:
    return total_var_debt + total_stbl_debt


def calc_available_liquidity(total_debt: int, total_deposits: int) -> int:
    return total_deposits - total_debt


def calc_stable_borrow_ratio(stbl_bor_amount: int, available_liquidity: int) -> int:
    """
    :return: ratio of the available liquidity that is being stable borrowed (16dp)
    """
    return div_scale(stbl_bor_amount, available_liquidity, ONE_16_DP)


def calc_max_single_stable_borrow(available_liquidity: int, sbpc: int) -> int:
    """
    :param available_liquidity: 0dp
    :param sbpc: stable borrow percentage cap (16dp)
    :return: max stable borrow amount that can be made in one go (0dp)
    """
    return mul_scale(available_liquidity, sbpc, ONE_16_DP)


def calc_deposit_return(deposit_amount: int, diit: int) -> int:
    """
    :param deposit_amount: 0dp
    :param diit: deposit interest index (14dp)
    :return: fAsset amount received from the deposit (0dp)
    """
    return div_scale(deposit_amount, diit, ONE_14_DP)


def calc_withdraw_return(withdraw_amount: int, diit: int) -> int:
    """
    :param withdraw_amount: fAsset amount (0dp)
    :param diit: deposit interest index (14dp)
    :return: asset amount received from the withdrawal (0dp)
    """
    return mul_scale(withdraw_amount, diit, ONE_14_DP)


def calc_collateral_asset_loan_value(amount: int, price: int, factor: int) -> int:
    """
    Rounds down.

    :param amount: 0dp
    :param price: 14dp
    :param factor: collateral factor (4dp)
    :return: loan value (4dp)
    """
    return mul_scale(mul_scale(amount, price, ONE_10_DP), factor, ONE_4_DP)


def calc_collateral_asset_loan_value_round_up(amount: int, price: int, factor: int) -> int:
    """
    Same as :func:`calc_collateral_asset_loan_value`, but each step adds one unit.
    """
    return mul_scale_round_up(mul_scale_round_up(amount, price, ONE_10_DP), factor, ONE_4_DP)


def calc_borrow_asset_loan_value(amount: int, price: int, factor: int) -> int:
    """
    Rounds up, biasing debt upwards.

    :param amount: 0dp
    :param price: 14dp
    :param factor: borrow factor (4dp)
    :return: loan value (4dp)
    """
    return mul_scale_round_up(mul_scale_round_up(amount, price, ONE_10_DP), factor, ONE_4_DP)


def calc_ltv_ratio(total_borrow_balance_value: int, total_collateral_balance_value: int) -> int:
    """
    :return: LTV ratio (4dp), 0 if there is no collateral
    """
    if total_collateral_balance_value == 0:
        return 0
    return div_scale(total_borrow_balance_value, total_collateral_balance_value, ONE_4_DP)


def calc_borrow_utilisation_ratio(
    total_effective_borrow_balance_value: int,
    total_effective_collateral_balance_value: int,
) -> int:
    """
    :return: borrow utilisation ratio (4dp), 0 if there is no effective collateral
    """
    if total_effective_collateral_balance_value == 0:
        return 0
    return div_scale(
        total_effective_borrow_balance_value,
        total_effective_collateral_balance_value,
        ONE_4_DP,
    )


def calc_liquidation_margin(
    total_effective_borrow_balance_value: int,
    total_effective_collateral_balance_value: int,
) -> int:
    """
    :return: liquidation margin (4dp), negative when the loan is under-collateralised, 0 if there is no effective
             collateral
    """
    if total_effective_collateral_balance_value == 0:
        return 0
    return div_scale(
        total_effective_collateral_balance_value - total_effective_borrow_balance_value,
        total_effective_collateral_balance_value,
        ONE_4_DP,
    )


def calc_borrow_balance(bbtn1: int, biit: int, biitn1: int) -> int:
    """
    Lending v2 contract convention: both the index ratio and the product round up by one unit.

    :param bbtn1: borrow balance at the latest operation (0dp)
    :param biit: current borrow interest index (14dp)
    :param biitn1: borrow interest index at the latest operation (14dp)
    :return: borrow balance (0dp)
    """
    return mul_scale_round_up(bbtn1, div_scale_round_up(biit, biitn1, ONE_14_DP), ONE_14_DP)


def calc_loan_stable_interest_rate(bbt: int, amount: int, sbirtn1: int, sbirt1: int) -> int:
    """
    Weighted stable borrow interest rate of a loan after its borrow is increased.

    :param bbt: borrow balance (0dp)
    :param amount: borrow increase (0dp)
    :param sbirtn1: loan's current stable rate (16dp)
    :param sbirt1: pool's stable rate (16dp)
    :return: stable interest rate (16dp)
    """
    return (bbt * sbirtn1 + amount * sbirt1) // (bbt + amount)


def calc_rebalance_up_threshold(rudir: int, vr0: int, vr1: int, vr2: int) -> int:
    """
    Deposit interest rate condition required to rebalance up a stable borrow.
    There is also a second condition on the pool utilisation ratio.
    """
    return mul_scale(rudir, vr0 + vr1 + vr2, ONE_16_DP)


def calc_rebalance_down_threshold(rdd: int, sbirt1: int) -> int:
    """
    Stable interest rate condition required to rebalance down a stable borrow.
    """
    return mul_scale(ONE_16_DP + rdd, sbirt1, ONE_16_DP)


def calc_flash_loan_repayment(borrow_amount: int, fee: int) -> int:
    """
    :param borrow_amount: 0dp
    :param fee: 16dp
    :return: repayment amount (0dp)
    """
    return borrow_amount + mul_scale_round_up(borrow_amount, fee, ONE_16_DP)
