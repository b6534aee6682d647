"""Proof-of-stake statistics."""

from __future__ import annotations

from datetime import timedelta

from explorer_views.annotations import ForeignKey, SmartComment, Unique
from explorer_views.catalog.models import DerivedView, RefreshCost

GROUP = "staking"
_MINUTE = timedelta(minutes=1)

my_stake_summary = DerivedView(
    name="my_stake_summary",
    group=GROUP,
    depends_on=("stake_reward", "stake_entry"),
    comment=SmartComment.of(
        Unique(("staker_pkid",)),
        ForeignKey(
            ("staker_pkid",),
            "account",
            ("pkid",),
            foreign_field_name="myStakeSummary",
            field_name="staker",
        ),
    ),
    body="""\
select coalesce(total_stake_rewards.staker_pkid, total_stake_amount.staker_pkid) as staker_pkid,
       total_stake_rewards.total_rewards as total_stake_rewards,
       total_stake_amount.total_stake as total_stake
from (select staker_pkid, sum(reward_nanos) total_rewards
      from stake_reward
      group by staker_pkid) total_stake_rewards
         full outer join
     (select staker_pkid, sum(stake_amount_nanos) total_stake
      from stake_entry
      group by staker_pkid) total_stake_amount
     on total_stake_amount.staker_pkid = total_stake_rewards.staker_pkid""",
    unique_key=("staker_pkid",),
    refresh_cost=RefreshCost.MEDIUM,
    refresh_interval=_MINUTE,
)

# A single row; the unique key spans the columns that identify it.
staking_summary = DerivedView(
    name="staking_summary",
    group=GROUP,
    depends_on=("validator_entry", "epoch_entry", "leader_schedule_entry", "stake_entry"),
    body="""\
select *
from (select sum(total_stake_amount_nanos) as global_stake_amount_nanos,
             count(distinct validator_pkid) as num_validators
      from validator_entry) validator_summary,
     (select max(epoch_number) current_epoch_number from epoch_entry) current_epoch,
     (select count(distinct snapshot_at_epoch_number) num_epochs_in_leader_schedule
      from leader_schedule_entry) num_epochs_in_leader_schedule,
     (select count(distinct staker_pkid) as num_stakers from stake_entry) staker_summary""",
    unique_key=(
        "global_stake_amount_nanos",
        "num_validators",
        "current_epoch_number",
        "num_epochs_in_leader_schedule",
    ),
    refresh_cost=RefreshCost.MEDIUM,
    refresh_interval=_MINUTE,
)

validator_stats = DerivedView(
    name="validator_stats",
    group=GROUP,
    depends_on=(
        staking_summary.name,
        "validator_entry",
        "jailed_history_event",
        "leader_schedule_entry",
        "stake_reward",
    ),
    comment=SmartComment.of(
        Unique(("validator_pkid",)),
        ForeignKey(
            ("validator_pkid",),
            "validator_entry",
            ("validator_pkid",),
            foreign_field_name="validatorStats",
            field_name="validatorEntry",
        ),
    ),
    body=f"""\
select validator_entry.validator_pkid,
       rank() OVER (order by validator_entry.total_stake_amount_nanos) as validator_rank,
       validator_entry.total_stake_amount_nanos::float /
       nullif({staking_summary.name}.global_stake_amount_nanos::float, 0) as percent_total_stake,
       coalesce(time_in_jail, 0) +
       (case
            when jailed_at_epoch_number = 0 then 0
            else ({staking_summary.name}.current_epoch_number - jailed_at_epoch_number) END) epochs_in_jail,
       coalesce(leader_schedule_summary.num_epochs_in_leader_schedule, 0) num_epochs_in_leader_schedule,
       coalesce(leader_schedule_summary.num_epochs_in_leader_schedule, 0)::float /
       nullif({staking_summary.name}.num_epochs_in_leader_schedule::float, 0) as percent_epochs_in_leader_schedule,
       coalesce(total_rewards, 0) as total_stake_reward_nanos
from {staking_summary.name},
     validator_entry
         left join (select validator_pkid, sum(jhe.unjailed_at_epoch_number - jhe.jailed_at_epoch_number) time_in_jail
                    from jailed_history_event jhe
                    group by validator_pkid) jhe
                   on jhe.validator_pkid = validator_entry.validator_pkid
         left join (select validator_pkid, count(*) as num_epochs_in_leader_schedule
                    from leader_schedule_entry
                    group by validator_pkid) leader_schedule_summary
                   on leader_schedule_summary.validator_pkid = validator_entry.validator_pkid
         left join (select validator_pkid, sum(reward_nanos) as total_rewards
                    from stake_reward
                    group by validator_pkid) as total_stake_rewards
                   on total_stake_rewards.validator_pkid = validator_entry.validator_pkid""",
    unique_key=("validator_pkid",),
    refresh_cost=RefreshCost.MEDIUM,
    refresh_interval=_MINUTE,
)

OBJECTS = (my_stake_summary, staking_summary, validator_stats)