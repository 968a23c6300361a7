"""Command-line interface for s3lite.

Commands:
    - ls / buckets: List objects under a prefix, or all buckets
    - get / put / rm / cp / exists: Single object operations
    - mb / rb / versioning / purge-versions: Bucket management
    - tags / tag / untag: Bucket and object tagging
    - upload: Multipart upload of a local file
    - presign: Create a presigned URL

Connection options go before the command:

    s3lite --aws-profile myprofile --region eu-west-1 ls s3://bucket/data/
"""

from typing import Annotated, List, Optional

import typer

from . import __version__
from .cli_params import (
    AccessKeyOption,
    BucketArgument,
    EndpointUrlOption,
    ExpiresOption,
    PartSizeOption,
    ProfileOption,
    RegionOption,
    S3PathArgument,
    SecretKeyOption,
    SessionTokenOption,
    VersionIdOption,
)
from .core import settings
from .objectstorage import (
    S3ClientConfig,
    S3ClientManager,
    copy_object,
    create_bucket,
    delete_bucket,
    delete_object,
    delete_tags,
    enable_versioning,
    get_object,
    get_object_file,
    get_tags,
    list_buckets,
    list_keys,
    multipart_upload,
    object_exists,
    purge_versions,
    put_object,
    put_tags,
    sign_url,
)

app = typer.Typer(
    name="s3lite",
    help="Small client for Amazon S3 and S3-compatible object storage.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"s3lite {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    access_key_id: AccessKeyOption = None,
    secret_access_key: SecretKeyOption = None,
    session_token: SessionTokenOption = None,
    region_name: RegionOption = None,
    endpoint_url: EndpointUrlOption = None,
    aws_profile: ProfileOption = None,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, help="Show version."),
    ] = None,
) -> None:
    """
    s3lite: object and bucket operations against S3.
    """
    ctx.obj = S3ClientConfig(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        region_name=region_name or settings.default_region,
        endpoint_url=endpoint_url,
        aws_profile=aws_profile,
    )


def _manager(ctx: typer.Context) -> S3ClientManager:
    return S3ClientManager(ctx.obj)


def _fail(e: Exception) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


def _parse_tags(pairs: List[str]) -> dict:
    tags = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}")
        tags[key] = value
    return tags


@app.command("ls")
def ls_cmd(ctx: typer.Context, path: S3PathArgument) -> None:
    """
    List object keys under an S3 prefix.

    Example: s3lite ls s3://bucket/data/
    """
    try:
        bucket, prefix = S3ClientManager.parse_s3_path(path)
        keys = list(list_keys(_manager(ctx), bucket, prefix))
    except Exception as e:
        _fail(e)

    for key in keys:
        typer.echo(f"s3://{bucket}/{key}")


@app.command("buckets")
def buckets_cmd(ctx: typer.Context) -> None:
    """List all buckets owned by the caller."""
    try:
        names = list_buckets(_manager(ctx))
    except Exception as e:
        _fail(e)

    for name in names:
        typer.echo(name)


@app.command("get")
def get_cmd(
    ctx: typer.Context,
    path: S3PathArgument,
    destination: Annotated[
        Optional[str],
        typer.Argument(help="Local file to write to (default: stdout)"),
    ] = None,
    version_id: VersionIdOption = None,
) -> None:
    """
    Download an object to a file or to stdout.

    Example: s3lite get s3://bucket/report.csv report.csv
    """
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        manager = _manager(ctx)
        if destination:
            get_object_file(manager, bucket, key, destination, version=version_id)
            return
        data = get_object(manager, bucket, key, version=version_id, raw=True)
    except Exception as e:
        _fail(e)

    typer.echo(data, nl=False)


@app.command("put")
def put_cmd(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Local file to upload")],
    path: S3PathArgument,
    content_type: Annotated[
        Optional[str],
        typer.Option("--content-type", help="Content-Type (default: from extension)"),
    ] = None,
) -> None:
    """
    Upload a local file as a single object.

    Example: s3lite put report.csv s3://bucket/report.csv
    """
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        with open(source, "rb") as f:
            data = f.read()
        put_object(_manager(ctx), bucket, key, data, content_type=content_type)
    except Exception as e:
        _fail(e)

    typer.echo(f"Uploaded {source} to {path} ({len(data):,} bytes)")


@app.command("upload")
def upload_cmd(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Local file to upload")],
    path: S3PathArgument,
    part_size_mb: PartSizeOption = None,
    abort_on_failure: Annotated[
        bool,
        typer.Option(
            "--abort-on-failure", help="Abort the multipart upload if a part fails"
        ),
    ] = False,
) -> None:
    """
    Upload a local file with a multipart upload.

    Example: s3lite upload big.tar s3://bucket/big.tar --part-size-mb 100
    """
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        with open(source, "rb") as f:
            multipart_upload(
                _manager(ctx),
                bucket,
                key,
                f,
                part_size_mb=part_size_mb,
                abort_on_failure=abort_on_failure,
            )
    except Exception as e:
        _fail(e)

    typer.echo(f"Uploaded {source} to {path}")


@app.command("rm")
def rm_cmd(
    ctx: typer.Context, path: S3PathArgument, version_id: VersionIdOption = None
) -> None:
    """Delete an object (or one version of it)."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        delete_object(_manager(ctx), bucket, key, version=version_id)
    except Exception as e:
        _fail(e)

    typer.echo(f"Deleted {path}")


@app.command("cp")
def cp_cmd(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Source S3 path")],
    destination: Annotated[str, typer.Argument(help="Destination S3 path")],
) -> None:
    """
    Copy an object within S3.

    Example: s3lite cp s3://bucket/a.txt s3://other-bucket/b.txt
    """
    try:
        bucket, key = S3ClientManager.parse_s3_path(source)
        to_bucket, to_key = S3ClientManager.parse_s3_path(destination)
        copy_object(_manager(ctx), bucket, key, to_bucket=to_bucket, to_path=to_key)
    except Exception as e:
        _fail(e)

    typer.echo(f"Copied {source} to {destination}")


@app.command("exists")
def exists_cmd(ctx: typer.Context, path: S3PathArgument) -> None:
    """Check whether an object exists; exits 1 if it does not."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        found = object_exists(_manager(ctx), bucket, key)
    except Exception as e:
        _fail(e)

    if not found:
        typer.echo(f"✗ Not found: {path}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ Exists: {path}")


@app.command("mb")
def mb_cmd(ctx: typer.Context, bucket: BucketArgument) -> None:
    """Create a bucket in the selected region (no error if you already own it)."""
    try:
        create_bucket(_manager(ctx), bucket)
    except Exception as e:
        _fail(e)

    typer.echo(f"Bucket ready: {bucket}")


@app.command("rb")
def rb_cmd(ctx: typer.Context, bucket: BucketArgument) -> None:
    """Delete an empty bucket."""
    try:
        delete_bucket(_manager(ctx), bucket)
    except Exception as e:
        _fail(e)

    typer.echo(f"Deleted bucket {bucket}")


@app.command("versioning")
def versioning_cmd(ctx: typer.Context, bucket: BucketArgument) -> None:
    """Enable versioning on a bucket."""
    try:
        enable_versioning(_manager(ctx), bucket)
    except Exception as e:
        _fail(e)

    typer.echo(f"Versioning enabled for {bucket}")


@app.command("purge-versions")
def purge_versions_cmd(
    ctx: typer.Context,
    path: S3PathArgument,
    pattern: Annotated[
        str, typer.Option("--pattern", help="Only keys matching this regex")
    ] = "",
) -> None:
    """Delete every non-current object version under a prefix."""
    try:
        bucket, prefix = S3ClientManager.parse_s3_path(path)
        deleted = purge_versions(_manager(ctx), bucket, prefix, pattern)
    except Exception as e:
        _fail(e)

    typer.echo(f"Deleted {deleted:,} old versions")


@app.command("tags")
def tags_cmd(ctx: typer.Context, path: S3PathArgument) -> None:
    """Show the tags of a bucket (s3://bucket) or object (s3://bucket/key)."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        tags = get_tags(_manager(ctx), bucket, key)
    except Exception as e:
        _fail(e)

    if not tags:
        typer.echo("No tags.")
    for key, value in sorted(tags.items()):
        typer.echo(f"{key}={value}")


@app.command("tag")
def tag_cmd(
    ctx: typer.Context,
    path: S3PathArgument,
    pairs: Annotated[List[str], typer.Argument(help="Tags as KEY=VALUE")],
) -> None:
    """Replace the tags of a bucket or object."""
    tags = _parse_tags(pairs)
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        put_tags(_manager(ctx), bucket, tags, path=key)
    except Exception as e:
        _fail(e)

    typer.echo(f"Tagged {path} with {len(tags)} tags")


@app.command("untag")
def untag_cmd(ctx: typer.Context, path: S3PathArgument) -> None:
    """Remove all tags from a bucket or object."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        delete_tags(_manager(ctx), bucket, key)
    except Exception as e:
        _fail(e)

    typer.echo(f"Removed tags from {path}")


@app.command("presign")
def presign_cmd(
    ctx: typer.Context,
    path: S3PathArgument,
    expires: ExpiresOption = None,
    verb: Annotated[str, typer.Option("--verb", help="HTTP verb, GET or PUT")] = "GET",
    content_type: Annotated[
        str,
        typer.Option("--content-type", help="Content-Type the uploader will send"),
    ] = "application/octet-stream",
) -> None:
    """
    Print a presigned URL for an object.

    Example: s3lite presign s3://bucket/upload.txt --verb PUT --content-type text/plain
    """
    try:
        bucket, key = S3ClientManager.parse_s3_path(path)
        url = sign_url(
            _manager(ctx),
            bucket,
            key,
            expires=expires,
            verb=verb.upper(),
            content_type=content_type,
        )
    except Exception as e:
        _fail(e)

    typer.echo(url)


if __name__ == "__main__":
    app()
