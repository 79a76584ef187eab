"""
Delta Lake dimension storage for Databricks and Spark environments.
"""

from typing import Any, Dict, List, Optional
from pyspark.sql import SparkSession
from delta.tables import DeltaTable
from delta.exceptions import DeltaConcurrentModificationException
import logging

from ..common.config import DimensionConfig, SCDPolicy
from ..common.exceptions import SCDProcessingError, SCDValidationError, StaleSnapshotError
from ..scd.change_set import ChangeSet
from ..scd.records import DimensionRecord
from .base import DimensionStore

logger = logging.getLogger(__name__)


class DeltaDimensionStore(DimensionStore):
    """Reads snapshots from and commits change sets to a Delta table."""

    def __init__(self, config: DimensionConfig, spark: SparkSession, table_name: str):
        """
        Initialize DeltaDimensionStore with configuration and Spark session.

        Args:
            config: Dimension configuration
            spark: Spark session
            table_name: Fully qualified Delta table name
        """
        if not table_name:
            raise ValueError("table_name is required")

        self.config = config
        self.spark = spark
        self.table_name = table_name

        logger.info(f"Initialized DeltaDimensionStore for table: {table_name}")

    def _select_rows(self, business_key: Any, current_only: bool) -> List[DimensionRecord]:
        predicate = f"{self.config.business_key_column} = :business_key"
        if current_only:
            predicate += f" AND {self.config.is_current_column} = true"

        rows = self.spark.sql(
            f"SELECT * FROM {self.table_name} WHERE {predicate} "
            f"ORDER BY {self.config.effective_start_column}",
            args={"business_key": business_key}
        ).collect()
        return [DimensionRecord.from_row(row.asDict(), self.config) for row in rows]

    def get_current_record(self, business_key: Any) -> Optional[DimensionRecord]:
        records = self._select_rows(business_key, current_only=True)
        if len(records) > 1:
            raise SCDValidationError(
                f"Found {len(records)} current records for key {business_key} in {self.table_name}"
            )
        return records[0] if records else None

    def get_history(self, business_key: Any) -> List[DimensionRecord]:
        return self._select_rows(business_key, current_only=False)

    def commit(self, change_set: ChangeSet) -> None:
        """
        Commit a change set as a single MERGE.

        The closed or updated current row is matched on its surrogate key and
        the new version is inserted, so both land in one Delta transaction.
        The MERGE source is joined against the table's current row as it was
        snapshotted; if that row moved, the source is empty, nothing is
        written and StaleSnapshotError is raised.

        Args:
            change_set: Change set computed from a snapshot of this table
        """
        logger.info("🚀 ENTER: commit")

        if change_set.is_empty:
            logger.info("🏁 EXIT: commit (empty)")
            return

        business_key = change_set.business_key
        current = self.get_current_record(business_key)

        reason = change_set.stale_reason(current)
        if reason is not None:
            logger.warning(f"Stale snapshot for key {business_key}: {reason}")
            logger.info("🏁 EXIT: commit (stale)")
            raise self._stale(change_set, reason, current)

        rows = [record.to_row(self.config) for record in change_set.apply(current)]
        source_df = self.spark.createDataFrame(rows, schema=self.spark.table(self.table_name).schema)
        guarded_df = self._guard_source(source_df, business_key, current)

        key_column = self.config.business_key_column
        surrogate_key = self.config.surrogate_key_column
        merge_condition = (
            f"target.{key_column} = source.{key_column} AND "
            f"target.{surrogate_key} = source.{surrogate_key}"
        )

        try:
            merge_metrics = (DeltaTable.forName(self.spark, self.table_name).alias("target")
                             .merge(guarded_df.alias("source"), merge_condition)
                             .whenMatchedUpdateAll(condition=f"target.{self.config.is_current_column} = true")
                             .whenNotMatchedInsertAll()
                             .execute())
        except DeltaConcurrentModificationException as e:
            logger.warning(f"Concurrent write on {self.table_name} for key {business_key}: {str(e)}")
            raise StaleSnapshotError(
                f"Concurrent write on {self.table_name} for key {business_key}: {str(e)}",
                business_key=business_key,
                expected_surrogate_key=change_set.snapshot_surrogate_key
            )

        written = self._rows_written(merge_metrics)
        if written == 0:
            logger.warning(f"MERGE for key {business_key} found the snapshot row gone, nothing written")
            logger.info("🏁 EXIT: commit (stale)")
            raise self._stale(
                change_set,
                "current row changed before the MERGE ran",
                self.get_current_record(business_key)
            )
        if written != len(rows):
            logger.error(f"MERGE for key {business_key} wrote {written} rows, expected {len(rows)}")
            raise SCDProcessingError(
                f"MERGE for key {business_key} wrote {written} of {len(rows)} rows in {self.table_name}",
                processing_step="commit"
            )

        logger.info(f"✅ Committed {len(change_set)} mutations for key {business_key}")
        logger.info("🏁 EXIT: commit")

    def _guard_source(self, source_df, business_key: Any, current: Optional[DimensionRecord]):
        """
        Restrict the MERGE source to rows whose snapshot still holds in the table.

        A first observation requires that the key has no current row; any
        other change set requires the current row to carry every stored value
        of the snapshot.
        """
        key_column = self.config.business_key_column
        predicates = [f"{key_column} = :business_key", f"{self.config.is_current_column} = true"]
        args = {"business_key": business_key}

        if current is not None:
            pinned = {
                column: value for column, value in current.to_row(self.config).items()
                if column not in (key_column, self.config.effective_end_column, self.config.is_current_column)
            }
            for index, (column, value) in enumerate(pinned.items()):
                predicates.append(f"{column} <=> :snapshot_{index}")
                args[f"snapshot_{index}"] = value

        guard_df = self.spark.sql(
            f"SELECT {key_column} FROM {self.table_name} WHERE {' AND '.join(predicates)}",
            args=args
        )
        how = "left_anti" if current is None else "left_semi"
        return source_df.join(guard_df, on=key_column, how=how)

    def _rows_written(self, merge_metrics) -> int:
        metrics = merge_metrics.collect()[0]
        return metrics["num_updated_rows"] + metrics["num_inserted_rows"]

    def _stale(self, change_set: ChangeSet, reason: str,
               current: Optional[DimensionRecord]) -> StaleSnapshotError:
        return StaleSnapshotError(
            f"Stale snapshot for key {change_set.business_key} in {self.table_name}: {reason}",
            business_key=change_set.business_key,
            expected_surrogate_key=change_set.snapshot_surrogate_key,
            actual_surrogate_key=current.surrogate_key if current is not None else None
        )

    def create_table_if_not_exists(self, column_types: Optional[Dict[str, str]] = None) -> None:
        """
        Create the Delta table if it doesn't exist.

        Args:
            column_types: Optional SQL type per attribute (defaults to STRING)
        """
        try:
            if self.spark.catalog.tableExists(self.table_name):
                logger.info(f"Target table already exists: {self.table_name}")
                return

            self.spark.sql(self._build_create_table_sql(column_types or {}))
            logger.info(f"Created target table: {self.table_name}")

        except Exception as e:
            logger.error(f"Failed to create target table: {str(e)}")
            raise SCDProcessingError(f"Failed to create target table: {str(e)}", "create_table")

    def _build_create_table_sql(self, column_types: Dict[str, str]) -> str:
        """
        Build CREATE TABLE SQL statement.

        Args:
            column_types: SQL type per attribute

        Returns:
            CREATE TABLE SQL statement
        """
        columns = [f"{self.config.business_key_column} {column_types.get(self.config.business_key_column, 'STRING')}"]

        for attribute, policy in self.config.policies.items():
            sql_type = column_types.get(attribute, "STRING")
            columns.append(f"{self.config.current_column(attribute)} {sql_type}")
            if policy is SCDPolicy.SHADOW_COLUMN:
                columns.append(f"{self.config.previous_column(attribute)} {sql_type}")

        date_type = column_types.get(self.config.effective_start_column, "DATE")
        columns.extend([
            f"{self.config.surrogate_key_column} STRING",
            f"{self.config.scd_hash_column} STRING",
            f"{self.config.effective_start_column} {date_type}",
            f"{self.config.effective_end_column} {date_type}",
            f"{self.config.is_current_column} BOOLEAN"
        ])

        columns_sql = ",\n    ".join(columns)

        return f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            {columns_sql}
        ) USING DELTA
        """

    def get_table_info(self) -> Dict[str, Any]:
        """
        Get information about the target table.

        Returns:
            Dictionary with table information
        """
        try:
            record_count = self.spark.sql(f"SELECT COUNT(*) as count FROM {self.table_name}").collect()[0]["count"]

            current_count = self.spark.sql(f"""
                SELECT COUNT(*) as count FROM {self.table_name}
                WHERE {self.config.is_current_column} = true
            """).collect()[0]["count"]

            return {
                "table_name": self.table_name,
                "total_records": record_count,
                "current_records": current_count,
                "historical_records": record_count - current_count
            }

        except Exception as e:
            logger.error(f"Failed to get table info: {str(e)}")
            return {"error": str(e)}
