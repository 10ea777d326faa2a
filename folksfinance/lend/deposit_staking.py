"""
Deposit staking rewards.

fAssets staked in a deposit staking program earn up to 3 reward assets. Each reward accrues a reward per token at
`reward_rate / total_staked` per second until the reward's end timestamp. The total staked is floored at the program's
min total staked, which caps the reward per token while the program is small.

Scales: reward rate and reward per token are 10dp, prices are 14dp, interest rates are 16dp.

The deposit staking app packs 30 staking programs into its global state:

- `S` + uint8 index (0-5): 5 programs each,
  [pool_app_id (6 bytes), total_staked, min_total_staked, num_rewards (1 byte)]
- `R` + uint8 index (0-22): 4 rewards each (2 in the last slot), [reward_asset_id (6 bytes), end_timestamp (4 bytes),
  latest_update (4 bytes), reward_rate, reward_per_token]

Reward `n` belongs to program `n // 3`.
"""

from dataclasses import dataclass
from typing import Final, Iterable, Mapping

from folksfinance.algorand.model import Address, AppId, AssetId, address_from_public_key
from folksfinance.algorand.state import parse_uint64s, require_bytes
from folksfinance.errors import InvalidInput, MissingPoolOrPrice
from folksfinance.lend.formulae import calc_withdraw_return
from folksfinance.lend.oracle import OraclePrices
from folksfinance.lend.pool import Pool, PoolManagerInfo
from folksfinance.math.fixed_point import ONE_10_DP, SECONDS_IN_YEAR, maximum, mul_scale

STAKING_PROGRAMS: Final[int] = 30
REWARDS_PER_PROGRAM: Final[int] = 3
PROGRAM_SLOTS: Final[int] = 6
PROGRAMS_PER_SLOT: Final[int] = 5
PROGRAM_ENTRY_SIZE: Final[int] = 23
REWARD_SLOTS: Final[int] = 23
REWARDS_PER_SLOT: Final[int] = 4
REWARD_ENTRY_SIZE: Final[int] = 30


def calc_reward_per_token(
    reward_per_token: int,
    reward_rate: int,
    latest_update: int,
    end_timestamp: int,
    total_staked: int,
    min_total_staked: int,
    now: int,
) -> int:
    """
    Accrues the reward per token from the latest update up to `now`, but no later than the reward's end timestamp.

    :return: reward per token (10dp)
    """
    if now <= end_timestamp:
        dt = maximum(now - latest_update, 0)
    elif latest_update <= end_timestamp:
        dt = end_timestamp - latest_update
    else:
        dt = 0
    staked = maximum(total_staked, min_total_staked)
    if staked == 0:
        return reward_per_token
    return reward_per_token + (reward_rate * dt) // staked


def calc_unclaimed_reward(
    old_unclaimed_reward: int,
    f_asset_staked_amount: int,
    reward_per_token: int,
    old_reward_per_token: int,
) -> int:
    """
    :return: reward amount claimable by the staker (0dp)
    """
    return old_unclaimed_reward + mul_scale(
        f_asset_staked_amount, reward_per_token - old_reward_per_token, ONE_10_DP
    )


def calc_reward_interest_rate(
    f_asset_staked_amount: int,
    reward_rate: int,
    reward_asset_price: int,
    asset_staked_amount: int,
    asset_price: int,
    end_timestamp: int,
    now: int,
) -> int:
    """
    Annual reward value relative to the staked value.

    :return: interest rate (16dp) - 0 once the reward has ended or if nothing is staked
    """
    if now > end_timestamp:
        return 0
    staked_value = asset_staked_amount * asset_price
    if staked_value == 0:
        return 0
    return (f_asset_staked_amount * reward_rate * reward_asset_price * SECONDS_IN_YEAR) // staked_value


def calc_staked_amount_value(asset_staked_amount: int, asset_price: int) -> int:
    """
    :return: $ value (4dp)
    """
    return mul_scale(asset_staked_amount, asset_price, ONE_10_DP)


@dataclass(slots=True, frozen=True)
class StakingReward:
    """
    Deposit staking program reward snapshot
    """

    reward_asset_id: AssetId
    end_timestamp: int
    latest_update: int
    reward_rate: int  # 10dp
    reward_per_token: int  # 10dp

    def accrue(self, total_staked: int, min_total_staked: int, now: int) -> "StakingReward":
        """
        :return: reward with its reward per token accrued up to `now`
        """
        return StakingReward(
            reward_asset_id=self.reward_asset_id,
            end_timestamp=self.end_timestamp,
            latest_update=maximum(now, self.latest_update),
            reward_rate=self.reward_rate,
            reward_per_token=calc_reward_per_token(
                self.reward_per_token,
                self.reward_rate,
                self.latest_update,
                self.end_timestamp,
                total_staked,
                min_total_staked,
                now,
            ),
        )


def _slot_key(prefix: bytes, index: int) -> bytes:
    return prefix + index.to_bytes(1, "big")


def _uint(value: bytes, start: int, end: int) -> int:
    return int.from_bytes(value[start:end], "big")


@dataclass(slots=True, frozen=True)
class StakingProgram:
    pool_app_id: AppId
    stake_index: int
    total_staked: int
    min_total_staked: int
    rewards: tuple[StakingReward, ...] = ()


@dataclass(slots=True, frozen=True)
class DepositStakingInfo:
    staking_programs: tuple[StakingProgram, ...] = ()
    current_round: int | None = None

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        now: int,
        current_round: int | None = None,
    ) -> "DepositStakingInfo":
        """
        Decodes the staking programs and accrues each reward's reward per token up to `now`.

        :param state: decoded deposit staking app global state
        :exception InvalidInput: if a program slot is missing or a configured reward's slot is too short
        """
        programs: list[tuple[AppId, int, int, int]] = []
        for slot in range(PROGRAM_SLOTS):
            value = require_bytes(state.get(_slot_key(b"S", slot)), f"S{slot}")
            if len(value) < PROGRAMS_PER_SLOT * PROGRAM_ENTRY_SIZE:
                raise InvalidInput(f"staking program slot is too short: slot={slot} length={len(value)}")
            for i in range(PROGRAMS_PER_SLOT):
                entry = value[i * PROGRAM_ENTRY_SIZE : (i + 1) * PROGRAM_ENTRY_SIZE]
                programs.append((AppId(_uint(entry, 0, 6)), _uint(entry, 6, 14), _uint(entry, 14, 22), entry[22]))

        rewards: list[list[StakingReward]] = [[] for _ in range(STAKING_PROGRAMS)]
        for slot in range(REWARD_SLOTS):
            value = state.get(_slot_key(b"R", slot))
            slot_value = value if isinstance(value, bytes) else b""
            for i in range(REWARDS_PER_SLOT):
                reward_index = slot * REWARDS_PER_SLOT + i
                if reward_index >= STAKING_PROGRAMS * REWARDS_PER_PROGRAM:
                    break
                stake_index, local_reward_index = divmod(reward_index, REWARDS_PER_PROGRAM)
                _, total_staked, min_total_staked, num_rewards = programs[stake_index]
                if local_reward_index >= num_rewards:
                    continue

                entry = slot_value[i * REWARD_ENTRY_SIZE : (i + 1) * REWARD_ENTRY_SIZE]
                if len(entry) < REWARD_ENTRY_SIZE:
                    raise InvalidInput(f"missing staking reward: stake_index={stake_index} reward={local_reward_index}")
                reward = StakingReward(
                    reward_asset_id=AssetId(_uint(entry, 0, 6)),
                    end_timestamp=_uint(entry, 6, 10),
                    latest_update=_uint(entry, 10, 14),
                    reward_rate=_uint(entry, 14, 22),
                    reward_per_token=_uint(entry, 22, 30),
                )
                rewards[stake_index].append(reward.accrue(total_staked, min_total_staked, now))

        return cls(
            staking_programs=tuple(
                StakingProgram(
                    pool_app_id=pool_app_id,
                    stake_index=stake_index,
                    total_staked=total_staked,
                    min_total_staked=min_total_staked,
                    rewards=tuple(rewards[stake_index]),
                )
                for stake_index, (pool_app_id, total_staked, min_total_staked, _) in enumerate(programs)
            ),
            current_round=current_round,
        )


@dataclass(slots=True, frozen=True)
class DepositStakingLocalState:
    """
    Deposit staking escrow's local state.

    Staked amounts are indexed by stake index. Reward per tokens and unclaimed rewards are indexed by
    `stake_index * 3 + local reward index`.
    """

    user_address: Address
    escrow_address: Address
    staked_amounts: tuple[int, ...]
    reward_per_tokens: tuple[int, ...]  # 10dp
    unclaimed_rewards: tuple[int, ...]
    current_round: int | None = None

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        escrow_address: Address,
        current_round: int | None = None,
    ) -> "DepositStakingLocalState":
        """
        :param state: decoded local state of the escrow in the deposit staking app
        :exception InvalidInput: if an expected state key is missing
        """

        def uint64s(prefix: bytes, slots: int, expected: int) -> tuple[int, ...]:
            values: list[int] = []
            for slot in range(slots):
                key = _slot_key(prefix, slot)
                values.extend(parse_uint64s(require_bytes(state.get(key), f"{prefix.decode()}{slot}")))
            if len(values) < expected:
                raise InvalidInput(f"expected {expected} values for state key prefix: {prefix.decode()}")
            return tuple(values)

        return cls(
            user_address=address_from_public_key(require_bytes(state.get(b"ua"), "ua")),
            escrow_address=escrow_address,
            staked_amounts=uint64s(b"S", 2, STAKING_PROGRAMS),
            reward_per_tokens=uint64s(b"R", 6, STAKING_PROGRAMS * REWARDS_PER_PROGRAM),
            unclaimed_rewards=uint64s(b"U", 6, STAKING_PROGRAMS * REWARDS_PER_PROGRAM),
            current_round=current_round,
        )


@dataclass(slots=True, frozen=True)
class UserStakingRewardInfo:
    reward_asset_id: AssetId
    end_timestamp: int
    reward_asset_price: int  # 14dp
    reward_interest_rate: int  # 16dp, 0 once the reward has ended
    unclaimed_reward: int
    unclaimed_reward_value: int  # $ 4dp


@dataclass(slots=True, frozen=True)
class UserStakingProgramInfo:
    # pylint: disable=too-many-instance-attributes

    pool_app_id: AppId
    f_asset_id: AssetId
    f_asset_staked_amount: int
    asset_id: AssetId
    asset_price: int  # 14dp
    asset_staked_amount: int
    staked_amount_value: int  # $ 4dp
    deposit_interest_rate: int  # 16dp
    deposit_interest_yield: int  # approximation 16dp
    rewards: tuple[UserStakingRewardInfo, ...] = ()


@dataclass(slots=True, frozen=True)
class UserDepositStakingInfo:
    user_address: Address
    escrow_address: Address
    staking_programs: tuple[UserStakingProgramInfo, ...] = ()
    current_round: int | None = None


def user_deposit_staking_info(
    local_state: DepositStakingLocalState,
    pool_manager_info: PoolManagerInfo,
    deposit_staking_info: DepositStakingInfo,
    pools: Iterable[Pool],
    oracle_prices: OraclePrices,
    now: int,
) -> UserDepositStakingInfo:
    """
    Values a deposit staking escrow: what is staked in each program, and the rewards it has earned.

    Programs without a pool, i.e., pool app ID 0, are skipped.

    :param pools: pools managed by the pool manager
    :exception MissingPoolOrPrice: if a program's pool or a price cannot be found
    """
    pools_by_app_id = {pool.app_id: pool for pool in pools}

    staking_programs: list[UserStakingProgramInfo] = []
    for program in deposit_staking_info.staking_programs:
        if program.pool_app_id == 0:
            continue
        pool = pools_by_app_id.get(program.pool_app_id)
        if pool is None:
            raise MissingPoolOrPrice("pool", program.pool_app_id)
        pool_info = pool_manager_info.get(program.pool_app_id)
        asset_price = oracle_prices.get(pool.asset_id).price

        f_asset_staked_amount = local_state.staked_amounts[program.stake_index]
        asset_staked_amount = calc_withdraw_return(f_asset_staked_amount, pool_info.deposit_interest_index)

        rewards: list[UserStakingRewardInfo] = []
        for local_reward_index, reward in enumerate(program.rewards):
            reward_index = program.stake_index * REWARDS_PER_PROGRAM + local_reward_index
            reward_asset_price = oracle_prices.get(reward.reward_asset_id).price
            unclaimed_reward = calc_unclaimed_reward(
                local_state.unclaimed_rewards[reward_index],
                f_asset_staked_amount,
                reward.reward_per_token,
                local_state.reward_per_tokens[reward_index],
            )
            rewards.append(
                UserStakingRewardInfo(
                    reward_asset_id=reward.reward_asset_id,
                    end_timestamp=reward.end_timestamp,
                    reward_asset_price=reward_asset_price,
                    reward_interest_rate=calc_reward_interest_rate(
                        f_asset_staked_amount,
                        reward.reward_rate,
                        reward_asset_price,
                        asset_staked_amount,
                        asset_price,
                        reward.end_timestamp,
                        now,
                    ),
                    unclaimed_reward=unclaimed_reward,
                    unclaimed_reward_value=mul_scale(unclaimed_reward, reward_asset_price, ONE_10_DP),
                )
            )

        staking_programs.append(
            UserStakingProgramInfo(
                pool_app_id=program.pool_app_id,
                f_asset_id=pool.f_asset_id,
                f_asset_staked_amount=f_asset_staked_amount,
                asset_id=pool.asset_id,
                asset_price=asset_price,
                asset_staked_amount=asset_staked_amount,
                staked_amount_value=calc_staked_amount_value(asset_staked_amount, asset_price),
                deposit_interest_rate=pool_info.deposit_interest_rate,
                deposit_interest_yield=pool_info.deposit_interest_yield,
                rewards=tuple(rewards),
            )
        )

    return UserDepositStakingInfo(
        user_address=local_state.user_address,
        escrow_address=local_state.escrow_address,
        staking_programs=tuple(staking_programs),
        current_round=local_state.current_round,
    )
